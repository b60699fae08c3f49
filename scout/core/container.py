"""Dependency Injection Container.

This module provides a centralized DI container using dependency-injector.
Everything the running service needs is a Singleton: the stores hold the
in-memory state, so there must be exactly one of each per process.

Usage:
    # In FastAPI
    from scout.core.container import container

    pipeline = container.pipeline()

    # In tests
    with container.services.analyzer.override(fake_analyzer):
        ...
"""

from dependency_injector import containers, providers

from scout.config import (
    MatchHistoryConfig,
    RelevanceSettings,
    ScannerConfig,
    ScoringConfig,
    WebhookConfig,
    WorkerPoolConfig,
)
from scout.core.config import Config, get_config
from scout.infrastructure.llm import LLMConfig
from scout.services.stores.pattern_store import PatternStore


def build_pattern_store(seed: bool, thresholds: RelevanceSettings) -> PatternStore:
    """Create the pattern store, optionally seeded from defaults.yaml.

    Args:
        seed: Whether to load the seed patterns
        thresholds: Initial threshold record

    Returns:
        PatternStore instance
    """
    if seed:
        return PatternStore.with_seed_patterns(thresholds=thresholds)
    return PatternStore(thresholds=thresholds)


class InfrastructureContainer(containers.DeclarativeContainer):
    """Infrastructure layer dependencies (external clients)."""

    global_config = providers.Dependency(instance_of=Config)

    # ============================================
    # HTTP / GitHub
    # ============================================

    http_client = providers.Singleton(
        "scout.infrastructure.http_client.HTTPClient",
        base_url=global_config.provided.github_api_url,
        timeout=15.0,
    )

    github_client = providers.Singleton(
        "scout.infrastructure.github.GitHubClient",
        http_client=http_client,
        token=global_config.provided.github_token,
    )

    # ============================================
    # LLM Clients
    # ============================================

    # Unified LLM client (LiteLLM-based, provider-agnostic)
    llm_client = providers.Singleton(
        "scout.infrastructure.llm.LLMClient",
    )


class ConfigContainer(containers.DeclarativeContainer):
    """Configuration models container.

    Provides typed Pydantic config models for services. Defaults come from
    config/defaults.yaml; process settings override what they cover.
    """

    global_config = providers.Dependency(instance_of=Config)

    scoring_config = providers.Singleton(ScoringConfig.from_defaults)

    relevance_settings = providers.Singleton(RelevanceSettings.from_defaults)

    worker_pool_config = providers.Singleton(
        WorkerPoolConfig.from_defaults,
        worker_count=global_config.provided.worker_count,
        max_queue_depth=global_config.provided.max_queue_depth,
        job_timeout_seconds=global_config.provided.job_timeout_seconds,
    )

    scanner_config = providers.Singleton(
        ScannerConfig,
        enabled=global_config.provided.scanner_enabled,
        interval_minutes=global_config.provided.scan_interval_minutes,
        max_results_per_pattern=global_config.provided.max_results_per_pattern,
    )

    webhook_config = providers.Singleton(
        WebhookConfig.from_defaults,
        secret=global_config.provided.github_webhook_secret,
    )

    match_history_config = providers.Singleton(MatchHistoryConfig.from_defaults)

    llm_config = providers.Singleton(
        LLMConfig,
        model=global_config.provided.llm_model_light,
        max_tokens=global_config.provided.llm_model_light_max_tokens,
    )


class ServiceContainer(containers.DeclarativeContainer):
    """Service layer dependencies.

    They receive infrastructure dependencies via injection.
    """

    global_config = providers.Dependency(instance_of=Config)
    infrastructure = providers.DependenciesContainer()
    configs = providers.DependenciesContainer()

    # ============================================
    # Stores
    # ============================================

    pattern_store = providers.Singleton(
        build_pattern_store,
        seed=global_config.provided.seed_default_patterns,
        thresholds=configs.relevance_settings,
    )

    model_registry = providers.Singleton(
        "scout.services.stores.model_registry.ModelRegistry",
    )

    job_store = providers.Singleton(
        "scout.services.stores.job_store.JobStore",
        max_retries=configs.worker_pool_config.provided.max_retries,
    )

    # ============================================
    # Enrichment
    # ============================================

    analyzer = providers.Selector(
        global_config.provided.analyzer_backend,
        metadata=providers.Singleton(
            "scout.services.enrichment.analyzer.MetadataAnalyzer",
        ),
        llm=providers.Singleton(
            "scout.services.enrichment.analyzer.LLMAnalyzer",
            llm_client=infrastructure.llm_client,
            config=configs.llm_config,
        ),
    )

    worker_pool = providers.Singleton(
        "scout.services.enrichment.worker_pool.EnrichmentWorkerPool",
        job_store=job_store,
        analyzer=analyzer,
        config=configs.worker_pool_config,
    )

    # ============================================
    # Discovery
    # ============================================

    scorer = providers.Singleton(
        "scout.services.discovery.scorer.RelevanceScorer",
        config=configs.scoring_config,
        registry=model_registry,
    )

    admission = providers.Singleton(
        "scout.services.discovery.admission.AdmissionController",
        job_store=job_store,
        pattern_store=pattern_store,
        pool=worker_pool,
    )

    pipeline = providers.Singleton(
        "scout.services.discovery.pipeline.DiscoveryPipeline",
        pattern_store=pattern_store,
        model_registry=model_registry,
        job_store=job_store,
        scorer=scorer,
        admission=admission,
        pool=worker_pool,
        match_history=configs.match_history_config,
    )

    webhook_receiver = providers.Singleton(
        "scout.services.discovery.sources.webhook.WebhookReceiver",
        sink=pipeline.provided.submit,
        config=configs.webhook_config,
    )

    pattern_scanner = providers.Singleton(
        "scout.services.discovery.sources.scanner.PatternScanner",
        sink=pipeline.provided.submit,
        github=infrastructure.github_client,
        pattern_store=pattern_store,
        config=configs.scanner_config,
        on_cycle_complete=pipeline.provided.dispatch_deferred,
    )

    scan_scheduler = providers.Singleton(
        "scout.workers.scheduler.ScanScheduler",
        scanner=pattern_scanner,
        interval_minutes=global_config.provided.scan_interval_minutes,
    )


class ApplicationContainer(containers.DeclarativeContainer):
    """Root application container.

    Composes all sub-containers and provides the main entry point.
    """

    # Uses get_config() to ensure same instance across the app
    config = providers.Singleton(get_config)

    # Sub-containers
    infrastructure = providers.Container(
        InfrastructureContainer,
        global_config=config,
    )

    configs = providers.Container(
        ConfigContainer,
        global_config=config,
    )

    services = providers.Container(
        ServiceContainer,
        global_config=config,
        infrastructure=infrastructure,
        configs=configs,
    )

    # ============================================
    # Convenience accessors (shortcuts)
    # ============================================

    http_client = providers.Singleton(
        lambda client: client,
        client=infrastructure.http_client,
    )

    pipeline = providers.Singleton(
        lambda svc: svc,
        svc=services.pipeline,
    )

    worker_pool = providers.Singleton(
        lambda svc: svc,
        svc=services.worker_pool,
    )

    webhook_receiver = providers.Singleton(
        lambda svc: svc,
        svc=services.webhook_receiver,
    )

    scan_scheduler = providers.Singleton(
        lambda svc: svc,
        svc=services.scan_scheduler,
    )


def create_container() -> ApplicationContainer:
    """Create and configure the application container.

    Returns:
        Configured ApplicationContainer instance
    """
    return ApplicationContainer()


# Global container instance
container = create_container()


def get_container() -> ApplicationContainer:
    """Get the global container (for FastAPI Depends)."""
    return container


__all__ = [
    "ApplicationContainer",
    "ConfigContainer",
    "InfrastructureContainer",
    "ServiceContainer",
    "build_pattern_store",
    "container",
    "create_container",
    "get_config",
    "get_container",
]
