"""Error taxonomy for the signing workflow.

Every operation of :class:`~signingdemo.workflow.SigningWorkflow` raises one
of these. :class:`~signingdemo.workflow.WorkflowSession` turns them into
status messages.
"""


class SigningDemoError(Exception):
    """Base class for all workflow errors."""


class KeyGenerationError(SigningDemoError):
    """Key store refused or failed to generate a key pair."""


class KeyNotFoundError(SigningDemoError):
    """No usable key exists under the requested alias."""


class SigningError(SigningDemoError):
    """Signature engine failed to produce a signature."""


class MissingInputError(SigningDemoError):
    """A required input (public key or signature) was not supplied."""


class VerificationDecodeError(SigningDemoError):
    """Public key or signature bytes could not be decoded."""


class AttestationError(SigningDemoError):
    """Certificate chain is empty, malformed, or could not be retrieved."""


class KeyStoreError(SigningDemoError):
    """Key store could not be opened or one of its entries could not be read."""


class ConfigError(SigningDemoError):
    """Configuration file could not be read, parsed or validated."""
