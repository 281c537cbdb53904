from subatomic.clients.jenkins import JenkinsClient
from subatomic.clients.openshift import OpenShiftClient
from subatomic.clients.slack import SlackClient

__all__ = ["JenkinsClient", "OpenShiftClient", "SlackClient"]
