from __future__ import annotations


class BootstrapError(RuntimeError):
    """Base class for every failure surfaced to the operator."""


class ConfigNotFound(BootstrapError, FileNotFoundError):
    pass


class ConfigInvalid(BootstrapError):
    pass


class DeviceInvalid(BootstrapError):
    """Target is not a block device or is too small. Raised before any write."""


class PayloadInvalid(BootstrapError):
    """Installer ISO is missing or implausibly small. Raised before any write."""


class PartitionOrFormatFailure(BootstrapError):
    """A destructive step failed. The device is left partially provisioned."""


class RuntimeInstallFailure(BootstrapError):
    pass


class ReadinessTimeout(RuntimeInstallFailure):
    pass


class AddonInstallFailure(BootstrapError):
    """Best-effort extras failed. Logged by the driver, never fatal."""


class StateInvalid(BootstrapError):
    """The driver state file exists but cannot be read back."""
