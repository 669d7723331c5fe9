"""Domain-specific exception classes for the reply agent."""


class ReplyAgentError(Exception):
    """Base class for all domain errors in the reply agent."""


class TemplateRenderError(ReplyAgentError):
    """Raised when a template is malformed and cannot be rendered.

    Attributes:
        section: The section key involved in the failure, if any.
    """

    def __init__(self, message: str, section: str | None = None) -> None:
        self.section = section
        super().__init__(message)


class NestedSectionError(TemplateRenderError):
    """Raised when a section opens inside another section."""

    def __init__(self, outer: str, inner: str) -> None:
        self.outer = outer
        super().__init__(
            f"Section '{inner}' is nested inside section '{outer}'; nesting is not supported",
            section=inner,
        )


class UnknownVariableError(TemplateRenderError):
    """Raised in strict mode when a placeholder has no context value.

    Attributes:
        variables: The unresolved variable names, in template order.
    """

    def __init__(self, variables: list[str]) -> None:
        self.variables = variables
        super().__init__(f"Unresolved template variables: {', '.join(variables)}")


class TemplateLibraryError(ReplyAgentError):
    """Raised when a template library definition is invalid."""
