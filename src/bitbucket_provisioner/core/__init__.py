"""Core infrastructure components for Bitbucket Provisioner."""

from bitbucket_provisioner.core.client import BitbucketClient
from bitbucket_provisioner.core.provider import AppPasswordAuth, BitbucketProvider, TokenAuth
from bitbucket_provisioner.core.state import ResourceInstance, State

__all__ = [
    "AppPasswordAuth",
    "BitbucketClient",
    "BitbucketProvider",
    "ResourceInstance",
    "State",
    "TokenAuth",
]
