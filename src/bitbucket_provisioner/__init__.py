"""Terraform-style provisioning of Bitbucket deployment variables."""

__version__ = "0.1.0"
