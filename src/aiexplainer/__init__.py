"""AI Explainer - explanations of selected text from OpenAI, Claude, Gemini and OpenRouter."""

__version__ = "0.1.0"
