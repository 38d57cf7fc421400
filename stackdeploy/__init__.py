"""stackdeploy — interactive installer for a self-hosted n8n AI stack."""

__version__ = "0.1.0"
