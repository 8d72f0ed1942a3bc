"""Built-in workflow templates."""

from careflow.workflows.templates import WORKFLOW_TEMPLATES, get_template

__all__ = ["WORKFLOW_TEMPLATES", "get_template"]
