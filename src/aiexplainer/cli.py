"""Command-line interface for AI Explainer."""

import argparse
import json
import logging
import sys

import uvicorn

from .config import settings
from .models import ReadingLevel


def main():
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="AI Explainer - plain-language explanations from multiple AI providers"
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Server command
    server_parser = subparsers.add_parser("serve", help="Start the web server")
    server_parser.add_argument(
        "--host", default=settings.host, help=f"Host to bind to (default: {settings.host})"
    )
    server_parser.add_argument(
        "--port", type=int, default=settings.port, help=f"Port to bind to (default: {settings.port})"
    )
    server_parser.add_argument(
        "--reload", action="store_true", help="Enable auto-reload for development"
    )

    # Explain command
    explain_parser = subparsers.add_parser("explain", help="Explain a piece of text")
    explain_parser.add_argument("text", help="Text to explain")
    explain_parser.add_argument(
        "--level",
        "-l",
        default=ReadingLevel.STANDARD.value,
        choices=[level.value for level in ReadingLevel],
        help="Reading level (default: standard)",
    )

    # Test key command
    test_key_parser = subparsers.add_parser("test-key", help="Check an API key against a provider")
    test_key_parser.add_argument("provider", help="Provider key (openai, claude, gemini, openrouter)")
    test_key_parser.add_argument("api_key", help="API key to test")

    # Providers command
    subparsers.add_parser("providers", help="List providers and their models")

    # Encrypt key command
    encrypt_parser = subparsers.add_parser(
        "encrypt-key", help="Encrypt an API key for storage in the environment"
    )
    encrypt_parser.add_argument("provider", help="Provider the key belongs to")
    encrypt_parser.add_argument("api_key", help="API key to encrypt")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "serve":
        run_server(args.host, args.port, args.reload)
    elif args.command == "explain":
        sys.exit(run_explain(args.text, args.level))
    elif args.command == "test-key":
        sys.exit(run_test_key(args.provider, args.api_key))
    elif args.command == "providers":
        run_providers()
    elif args.command == "encrypt-key":
        sys.exit(run_encrypt_key(args.provider, args.api_key))
    else:
        parser.print_help()
        sys.exit(1)


def run_server(host: str, port: int, reload: bool):
    """Run the web server."""
    uvicorn.run(
        "aiexplainer.api:create_app",
        host=host,
        port=port,
        reload=reload,
        factory=True,
    )


def run_explain(text: str, level: str) -> int:
    """Explain text with the configured provider and print the result."""
    from .proxy import ExplanationProxy

    proxy = ExplanationProxy(settings)
    outcome = proxy.get_explanation(text, level)

    if not outcome.success:
        print(f"Error ({outcome.error_kind}): {outcome.error}")
        return 1

    print(outcome.explanation)
    print()
    print(
        f"[{outcome.provider} / {outcome.model}] tokens={outcome.tokens_used} "
        f"cost=${outcome.cost_usd:.6f} time={outcome.response_time:.2f}s"
        + (" (cached)" if outcome.cached else "")
    )
    return 0


def run_test_key(provider_key: str, api_key: str) -> int:
    """Run the minimal key test request."""
    from .providers import registry
    from .proxy import ExplanationProxy

    if not registry.provider_exists(provider_key):
        print(f"Unknown provider: {provider_key}")
        print(f"Available: {', '.join(registry.get_available_providers())}")
        return 1

    result = ExplanationProxy(settings).test_api_key(api_key, provider_key)
    print(result.message)
    return 0 if result.success else 1


def run_providers():
    """Print providers and models in display order."""
    from .pricing import CostCalculator
    from .providers import registry

    calculator = CostCalculator()
    for provider_key, name in registry.get_available_providers().items():
        default_model = registry.get_default_model(provider_key)
        print(f"{name} ({provider_key})")
        for model in registry.get_provider_models_for_admin(provider_key):
            info = calculator.get_pricing_info(provider_key, model["id"])
            marker = "*" if model["id"] == default_model else " "
            print(f"  {marker} {model['id']:<45} {info['formatted_cost']}")
        print()


def run_encrypt_key(provider_key: str, api_key: str) -> int:
    """Print an encrypted API key for EXPLAINER_<PROVIDER>_API_KEY."""
    from .keystore import ApiKeyEncryption

    if not settings.encryption_secret:
        print("EXPLAINER_ENCRYPTION_SECRET must be set to encrypt keys.")
        return 1

    encrypted = ApiKeyEncryption(settings.encryption_secret).encrypt(api_key.strip(), provider_key)
    print(json.dumps({"provider": provider_key, "value": encrypted}))
    return 0


if __name__ == "__main__":
    main()
