"""Summary: Command-line interface for DraftPilot.

Importance: Provides a local-first entry point for tone checks, templates and drafting.
Alternatives: Build a web UI or desktop client first.
"""

from __future__ import annotations

import argparse
import logging

from draftpilot.app import build_services
from draftpilot.config import AppConfig
from draftpilot.models import EmailRequest
from draftpilot.services import DEFAULT_SESSION


def build_parser() -> argparse.ArgumentParser:
    """Summary: Build the CLI argument parser.

    Importance: Defines supported commands for local operation.
    Alternatives: Use a CLI framework like Typer or Click.
    """

    parser = argparse.ArgumentParser(description="DraftPilot CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze = subparsers.add_parser("analyze-tone", help="Analyze the tone of email text")
    analyze.add_argument("text", type=str)
    analyze.add_argument("--session", type=str, default=DEFAULT_SESSION)
    analyze.add_argument("--local", action="store_true", help="Skip the AI provider")

    subparsers.add_parser("list-templates", help="List email templates")

    show_template = subparsers.add_parser("show-template", help="Show a template")
    show_template.add_argument("template_id", type=str)

    apply_template = subparsers.add_parser("apply-template", help="Fill a template")
    apply_template.add_argument("template_id", type=str)
    apply_template.add_argument(
        "--var", action="append", default=[], metavar="KEY=VALUE", help="Template value"
    )
    apply_template.add_argument(
        "--fill-missing", action="store_true", help="Render missing values as [key]"
    )

    generate = subparsers.add_parser("generate-email", help="Generate an email draft")
    generate.add_argument("--sender", type=str, required=True)
    generate.add_argument("--receiver", type=str, required=True)
    generate.add_argument("--subject", type=str, required=True)
    generate.add_argument("--sender-title", type=str, default="")
    generate.add_argument("--receiver-title", type=str, default="")
    generate.add_argument(
        "--tone", type=str, default="professional", choices=["formal", "casual", "friendly", "professional"]
    )
    generate.add_argument("--length", type=str, default="medium", choices=["short", "medium", "long"])
    generate.add_argument("--context", type=str, default="")

    subparsers.add_parser("usage", help="Show AI token usage totals")

    subparsers.add_parser("serve", help="Run the HTTP API")

    return parser


def parse_vars(pairs: list[str]) -> dict[str, str]:
    """Summary: Parse KEY=VALUE arguments into a dict.

    Importance: Lets template data be passed on the command line.
    Alternatives: Read template data from a JSON file.
    """

    data: dict[str, str] = {}
    for pair in pairs:
        if "=" not in pair:
            raise ValueError(f"Expected KEY=VALUE, got: {pair}")
        key, value = pair.split("=", 1)
        data[key.strip()] = value
    return data


def run_cli() -> None:
    """Summary: Execute CLI commands based on arguments.

    Importance: Drives local workflows without the HTTP API.
    Alternatives: Invoke services via an HTTP API.
    """

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    parser = build_parser()
    args = parser.parse_args()
    config = AppConfig.from_env()

    if args.command == "serve":
        import uvicorn

        from draftpilot.api import create_app

        uvicorn.run(create_app(config), host=config.api_host, port=config.api_port)
        return

    try:
        _run_command(args, config)
    except (KeyError, ValueError) as exc:
        message = exc.args[0] if exc.args else exc.__class__.__name__
        parser.exit(status=1, message=f"error: {message}\n")


def _run_command(args: argparse.Namespace, config: AppConfig) -> None:
    services = build_services(config)

    if args.command == "analyze-tone":
        if args.local:
            result = services.tone.analyze_locally(args.text)
            mode = "local"
        else:
            outcome = services.tone.analyze(args.text, session_id=args.session)
            result = outcome.result
            mode = outcome.mode
        print(f"Tone: {result.tone} ({mode})")
        print(f"Formality: {result.formality}")
        print(f"Sentiment: {result.sentiment}")
        print(f"Clarity: {result.clarity}")
        print(f"Confidence: {round(result.confidence * 100)}%")
        for suggestion in result.suggestions:
            print(f"- {suggestion}")
        print(f"Tokens: {result.input_tokens} in / {result.output_tokens} out")
        return

    if args.command == "list-templates":
        for template in services.templates.list_templates():
            print(f"{template.id}: {template.name}")
        return

    if args.command == "show-template":
        template = services.templates.get_template(args.template_id)
        if template.subject:
            print(f"Subject: {template.subject}")
        if template.recipient:
            print(f"To: {template.recipient}")
        print(template.template)
        for variable in template.variables:
            print(f"  {variable.key}: {variable.label}")
        return

    if args.command == "apply-template":
        rendered = services.templates.apply(
            args.template_id, parse_vars(args.var), fill_missing=args.fill_missing
        )
        if rendered.subject:
            print(f"Subject: {rendered.subject}")
        if rendered.recipient:
            print(f"To: {rendered.recipient}")
        print(rendered.content)
        return

    if args.command == "generate-email":
        generated = services.emails.generate(
            EmailRequest(
                sender=args.sender,
                receiver=args.receiver,
                subject=args.subject,
                sender_title=args.sender_title,
                receiver_title=args.receiver_title,
                tone=args.tone,
                length=args.length,
                additional_context=args.context,
            )
        )
        print(generated.email)
        if generated.used_fallback:
            print("(AI unavailable, used fallback email)")
        return

    if args.command == "usage":
        usage = services.ai_audit.usage_totals()
        print(f"input_tokens: {usage.input_tokens}")
        print(f"output_tokens: {usage.output_tokens}")
        print(f"total_tokens: {usage.total_tokens}")
        return


if __name__ == "__main__":
    run_cli()
