"""Summary: Application factory wiring core services.

Importance: Centralizes dependency creation for CLI and API layers.
Alternatives: Instantiate services manually in each entrypoint.
"""

from __future__ import annotations

from dataclasses import dataclass

from draftpilot.ai import AiProvider, AiProviderFactory
from draftpilot.budget import BudgetRegistry
from draftpilot.config import AppConfig
from draftpilot.services import (
    AiAuditLogger,
    AiAuditService,
    EmailGenerationService,
    TemplateService,
    ToneAnalysisService,
)
from draftpilot.storage.sqlite_store import SqliteStore


@dataclass(frozen=True)
class AppServices:
    """Summary: Bundle of core services for DraftPilot.

    Importance: Simplifies passing dependencies to UI or API layers.
    Alternatives: Use a dependency injection container.
    """

    tone: ToneAnalysisService
    templates: TemplateService
    emails: EmailGenerationService
    ai_audit: AiAuditService
    store: SqliteStore
    config: AppConfig


def build_services(config: AppConfig, ai_provider: AiProvider | None = None) -> AppServices:
    """Summary: Build core services from configuration.

    Importance: Provides a single construction path for the application.
    Alternatives: Instantiate services directly within the CLI entrypoint.
    """

    store = SqliteStore(config.db_path)
    store.initialize()
    provider = ai_provider or AiProviderFactory(config).build()
    audit = AiAuditLogger(store=store, provider_name=config.ai_provider, model_name=config.model_name)
    budgets = BudgetRegistry(
        max_calls=config.tone_max_calls, prefix_chars=config.tone_reset_prefix_chars
    )
    return AppServices(
        tone=ToneAnalysisService(ai_provider=provider, budgets=budgets, audit=audit),
        templates=TemplateService(store=store),
        emails=EmailGenerationService(ai_provider=provider, audit=audit),
        ai_audit=AiAuditService(store=store),
        store=store,
        config=config,
    )
