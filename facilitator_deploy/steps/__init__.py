from .step_10_system_update import SystemUpdateStep
from .step_20_install_docker import InstallDockerStep
from .step_30_deploy_files import DeployFilesStep
from .step_40_materialize_config import MaterializeConfigStep
from .step_50_pull_images import PullImagesStep
from .step_60_start_services import StartServicesStep

__all__ = [
    "SystemUpdateStep",
    "InstallDockerStep",
    "DeployFilesStep",
    "MaterializeConfigStep",
    "PullImagesStep",
    "StartServicesStep",
    "install_steps",
    "redeploy_steps",
]


def install_steps():
    return [
        SystemUpdateStep(),
        InstallDockerStep(),
        DeployFilesStep(),
        MaterializeConfigStep(),
        PullImagesStep(),
        StartServicesStep(),
    ]


def redeploy_steps():
    """The image pull + start tail of the installer, reused by fctl deploy/update."""

    return [PullImagesStep(), StartServicesStep()]
