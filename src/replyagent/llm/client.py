"""Anthropic client factory and model configuration for the reply agent."""

from anthropic import Anthropic

# Model selection: Haiku for fast/cheap classification, Sonnet for nuanced rewriting
INTENT_MODEL = "claude-haiku-4-5-20250929"
COMPOSE_MODEL = "claude-sonnet-4-5-20250929"

# Configuration constants
DEFAULT_CONFIDENCE_THRESHOLD = 0.60
DEFAULT_HISTORY_TURNS = 6


def get_anthropic_client(api_key: str | None = None) -> Anthropic:
    """Create an Anthropic client.

    When *api_key* is empty the ``Anthropic()`` constructor reads
    ANTHROPIC_API_KEY from the environment.

    Args:
        api_key: Optional explicit API key.

    Returns:
        Configured Anthropic client instance.
    """
    if api_key:
        return Anthropic(api_key=api_key)
    return Anthropic()
