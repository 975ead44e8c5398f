from typing import Any


class InvalidTemplateError(ValueError):
    """Template content is missing or not a string."""

    code = "INVALID_TEMPLATE"

    def __init__(self, content: Any):
        self.content = content
        self.message = f"Template content must be a string (got {type(content).__name__})"
        super().__init__(self.message)
