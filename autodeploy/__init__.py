"""
Autodeploy - turns a short deployment request plus a repository into a running AWS deployment.

The package plans a runtime for the detected application(s), generates a Terraform
configuration for it, and runs that configuration with bounded recovery from state-lock and
resource conflicts. A CLI and a REST API sit on top of the pipeline.
"""

__version__ = "0.1.0"
