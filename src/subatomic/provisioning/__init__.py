"""Provisioning steps, the step registry and the orchestrator that runs them."""

from subatomic.provisioning.devops import STEPS, build_devops_pipeline, register_devops_steps
from subatomic.provisioning.engine import ProvisioningOrchestrator
from subatomic.provisioning.registry import RunContext, Stage, Step, StepRegistry
from subatomic.provisioning.results import RunResult, RunState

__all__ = [
    "ProvisioningOrchestrator",
    "RunContext",
    "RunResult",
    "RunState",
    "STEPS",
    "Stage",
    "Step",
    "StepRegistry",
    "build_devops_pipeline",
    "register_devops_steps",
]
