"""signingdemo - hardware-backed style key storage and ECDSA signing demo.

Generates an EC P-256 key pair in a key store, signs a fixed message with
SHA256withECDSA, verifies the signature, and retrieves the key's attestation
certificate chain.

Key modules:

- :mod:`signingdemo.workflow` - Signing workflow controller and session state
- :mod:`signingdemo.keystore` - Software and file-backed key stores
- :mod:`signingdemo.signature` - Signature engine
- :mod:`signingdemo.attestation` - Attestation authority and certificate chains
- :mod:`signingdemo.config` - YAML configuration
- :mod:`signingdemo.cli` - Command-line presentation layer
"""

__version__ = "0.1.0"
