from .base import BaseNodeKind, require_text, non_negative_int, one_of


class ErrorHandlerNode(BaseNodeKind):
    """Decide what happens when an upstream step fails.

    Routes to the `success` or `failure` output. `maxRetries` and
    `retryDelay` only matter when `errorAction` is "retry", but they are
    validated on every save.
    """

    NODE_TYPE = "error_handler"
    LABEL = "Error Handler"
    DESCRIPTION = "Log, retry or redirect when a step fails"
    OUTPUTS = ["success", "failure"]
    ERROR_ACTIONS = ["log", "retry", "redirect"]
    PARAMS = {
        "errorAction": {
            "type": "string",
            "enum": ERROR_ACTIONS,
            "default": "log",
            "description": "Action on error",
        },
        "maxRetries": {"type": "int", "default": 3, "description": "Max retry attempts"},
        "retryDelay": {"type": "int", "default": 1000, "description": "Delay between retries (ms)"},
        "timeout": {"type": "int", "default": 5000, "description": "Timeout for error handling (ms)"},
    }
    DEFAULTS = {"errorAction": "log", "maxRetries": 3, "retryDelay": 1000, "timeout": 5000}

    @classmethod
    def validate(cls, values, required=True):
        description = require_text(values, "description", "Description is required", required)
        action = one_of(values, "errorAction", cls.ERROR_ACTIONS, "Error action")
        max_retries = non_negative_int(values, "maxRetries", "Max retries must be a non-negative number")
        retry_delay = non_negative_int(values, "retryDelay", "Retry delay must be a non-negative number")
        timeout = non_negative_int(values, "timeout", "Timeout must be a non-negative number")
        return description, {
            "errorAction": action,
            "maxRetries": max_retries,
            "retryDelay": retry_delay,
            "timeout": timeout,
        }
