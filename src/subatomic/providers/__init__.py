from subatomic.providers.base import PlatformCommandRunner, RolloutStatus
from subatomic.providers.openshift import OpenShiftPlatform

__all__ = ["OpenShiftPlatform", "PlatformCommandRunner", "RolloutStatus"]
