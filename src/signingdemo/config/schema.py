"""Pydantic models for signingdemo.yaml configuration."""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field

from signingdemo.models import ALIAS_PATTERN


class KeyStoreConfig(BaseModel):
    """Key store backend configuration."""

    backend: Literal["memory", "file"] = Field(
        default="file",
        description="Key store backend: 'memory' (lost on exit) or 'file' (persisted)",
    )
    path: Path = Field(
        default=Path.home() / ".signingdemo" / "keystore",
        description="Directory for the file key store",
    )
    passphrase: str | None = Field(
        default=None,
        description="Passphrase encrypting private keys at rest (file backend)",
    )
    strongbox_available: bool = Field(
        default=False,
        description="Emulate an available StrongBox hardware security module",
    )


class KeyGenerationConfig(BaseModel):
    """Key pair generation configuration."""

    alias: str = Field(
        default="my_ecdsa_key",
        description="Alias the demo key pair is stored under",
        pattern=ALIAS_PATTERN,
    )
    use_strongbox: bool = Field(
        default=True,
        description="Request StrongBox backing when the key store supports it",
    )
    strongbox_policy: Literal["fallback", "require"] = Field(
        default="fallback",
        description=(
            "What to do when StrongBox is requested but unavailable: "
            "'fallback' (warn and use the default security level) or 'require' (fail)"
        ),
    )
    challenge_length: int = Field(
        default=20,
        description="Attestation challenge length in bytes",
        ge=16,
        le=64,
    )
    unlocked_device_required: bool = Field(
        default=True,
        description="Key use requires an unlocked device",
    )
    user_authentication_required: bool = Field(
        default=False,
        description="Key use requires user authentication",
    )


class SigningConfig(BaseModel):
    """Signing configuration."""

    message: str = Field(
        default="Hello, ECDSA! This message will be signed.",
        description="Message signed by the demo workflow",
    )
    algorithm: Literal["SHA256withECDSA"] = Field(
        default="SHA256withECDSA",
        description="Signature algorithm",
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Log level for the CLI",
    )


class SigningDemoConfig(BaseModel):
    """Root configuration model."""

    keystore: KeyStoreConfig = Field(default_factory=KeyStoreConfig)
    keygen: KeyGenerationConfig = Field(default_factory=KeyGenerationConfig)
    signing: SigningConfig = Field(default_factory=SigningConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
