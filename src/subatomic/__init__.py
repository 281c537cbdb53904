"""Subatomic: chat-driven provisioning of team DevOps environments on OpenShift."""

__version__ = "0.1.0"
