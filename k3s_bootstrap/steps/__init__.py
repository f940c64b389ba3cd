from .step_05_load_site_config import LoadSiteConfigStep
from .step_10_install_runtime import InstallRuntimeStep
from .step_20_await_ready import AwaitReadyStep
from .step_30_extract_token import ExtractTokenStep
from .step_40_install_components import InstallComponentsStep
from .step_50_write_descriptor import WriteDescriptorStep
from .step_60_configure_firewall import ConfigureFirewallStep
from .step_70_register_monitoring import RegisterMonitoringStep

__all__ = [
    "LoadSiteConfigStep",
    "InstallRuntimeStep",
    "AwaitReadyStep",
    "ExtractTokenStep",
    "InstallComponentsStep",
    "WriteDescriptorStep",
    "ConfigureFirewallStep",
    "RegisterMonitoringStep",
]
