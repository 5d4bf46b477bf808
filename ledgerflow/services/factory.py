"""
Pipeline construction.

Strategies are chosen once, from configuration presence:
- OpenRouter key → assisted extraction, else patterns only
- Verifier enabled with a key → remote verifier, else local checks
- Plaid credentials → live Plaid client, else the offline mock
"""
from dataclasses import dataclass
from typing import Optional

import structlog

from ledgerflow.config import Settings, get_settings
from ledgerflow.core.logging import configure_logging
from ledgerflow.database import build_engine, get_session_factory, init_db
from ledgerflow.services.account_locks import AccountLockRegistry
from ledgerflow.services.aggregators import BankAggregator, MockBankAggregator, PlaidAggregator
from ledgerflow.services.categorizer import Categorizer, RuleBasedCategorizer
from ledgerflow.services.extraction import OpenRouterExtractor, StatementExtractor
from ledgerflow.services.fx_converter import CachedFxConverter, FxConverter
from ledgerflow.services.ingestion import IngestionService
from ledgerflow.services.ledger_builder import LedgerBuilder
from ledgerflow.services.storage import SqlStorage, StorageBackend
from ledgerflow.services.sync import SyncService
from ledgerflow.services.verification import IngestionVerifier, RemoteVerifier, VerificationGate

logger = structlog.get_logger(__name__)


@dataclass
class Pipeline:
    """Wired services and their collaborators."""

    ingestion: IngestionService
    sync: SyncService
    storage: StorageBackend
    extractor: StatementExtractor
    verifier: IngestionVerifier
    categorizer: Categorizer
    fx_converter: FxConverter
    aggregator: BankAggregator


def build_extractor(settings: Settings) -> StatementExtractor:
    assistant = None
    if settings.assist_configured:
        assistant = OpenRouterExtractor(
            api_key=settings.openrouter_api_key,
            base_url=settings.openrouter_base_url,
            model=settings.assist_model,
            timeout=settings.assist_timeout_seconds,
        )
    return StatementExtractor(
        assistant=assistant,
        allow_structured_passthrough=settings.allow_structured_passthrough,
        assist_timeout=settings.assist_timeout_seconds,
        assist_max_chars=settings.assist_max_chars,
    )


def build_verifier(settings: Settings) -> IngestionVerifier:
    remote = None
    if settings.remote_verifier_configured:
        remote = RemoteVerifier(
            api_key=settings.verifier_api_key,
            environment=settings.verifier_environment,
            base_url=settings.verifier_base_url,
            timeout=settings.verifier_timeout_seconds,
        )
    return IngestionVerifier(
        remote=remote,
        fallback_checks=settings.verifier_fallback_checks,
        timeout=settings.verifier_timeout_seconds,
    )


def build_aggregator(settings: Settings) -> BankAggregator:
    if settings.plaid_configured:
        return PlaidAggregator(
            client_id=settings.plaid_client_id,
            secret=settings.plaid_secret,
            environment=settings.plaid_environment,
            timeout=settings.aggregator_timeout_seconds,
        )
    return MockBankAggregator()


def build_pipeline(
    settings: Optional[Settings] = None,
    storage: Optional[StorageBackend] = None,
    fx_converter: Optional[FxConverter] = None,
    aggregator: Optional[BankAggregator] = None,
) -> Pipeline:
    """
    Wire the ingestion and sync services.

    Args:
        settings: Defaults to get_settings().
        storage: Defaults to SqlStorage on the configured database.
        fx_converter: Defaults to an empty CachedFxConverter.
        aggregator: Overrides the configuration-selected aggregator.

    Returns:
        Pipeline with both orchestrators sharing one storage and lock registry.
    """
    settings = settings or get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.json_logs)

    if storage is None:
        engine = build_engine(settings.database_url)
        init_db(engine)
        storage = SqlStorage(get_session_factory(engine))

    extractor = build_extractor(settings)
    verifier = build_verifier(settings)
    categorizer = RuleBasedCategorizer()
    fx_converter = fx_converter or CachedFxConverter()
    aggregator = aggregator or build_aggregator(settings)

    ledger_builder = LedgerBuilder(categorizer, fx_converter)
    locks = AccountLockRegistry()

    ingestion = IngestionService(
        extractor=extractor,
        gate=VerificationGate(verifier, storage),
        ledger_builder=ledger_builder,
        storage=storage,
        base_currency=settings.base_currency,
        locks=locks,
    )
    sync = SyncService(
        aggregator=aggregator,
        ledger_builder=ledger_builder,
        storage=storage,
        base_currency=settings.base_currency,
        locks=locks,
    )

    logger.info(
        "pipeline_built",
        assisted_extraction=extractor.assistant is not None,
        remote_verifier=verifier.remote is not None,
        aggregator=aggregator.aggregator_type,
        storage=type(storage).__name__,
    )
    return Pipeline(
        ingestion=ingestion,
        sync=sync,
        storage=storage,
        extractor=extractor,
        verifier=verifier,
        categorizer=categorizer,
        fx_converter=fx_converter,
        aggregator=aggregator,
    )
