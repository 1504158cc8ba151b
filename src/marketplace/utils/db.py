"""Schema management for SQL-backed providers of the marketplace domain."""

from protean.domain import Domain
from sqlalchemy import create_engine

from marketplace.domain import logger

_SQL_PROVIDERS = ("sqlite", "postgresql")


def _register_models(domain: Domain, provider) -> None:
    # Accessing a repository's DAO builds and registers its SQLAlchemy model.
    registries = (
        domain.registry.aggregates,
        domain.registry.entities,
        domain.registry.projections,
    )
    for registry in registries:
        for _, record in registry.items():
            if record.cls.meta_.provider == provider.name:
                domain.repository_for(record.cls)._dao  # noqa: B018


def setup_db(domain: Domain) -> list[str]:
    """Create tables for every SQL provider. Returns the provider names touched."""
    touched = []
    with domain.domain_context():
        for name, provider in domain.providers.items():
            if provider.conn_info["provider"] not in _SQL_PROVIDERS:
                continue
            engine = create_engine(provider.conn_info["database_uri"])
            _register_models(domain, provider)
            provider._metadata.create_all(engine)
            touched.append(name)
            logger.info("Database schema created", provider=name)
    return touched


def drop_db(domain: Domain) -> list[str]:
    """Drop tables for every SQL provider. Returns the provider names touched."""
    touched = []
    with domain.domain_context():
        for name, provider in domain.providers.items():
            if provider.conn_info["provider"] not in _SQL_PROVIDERS:
                continue
            engine = create_engine(provider.conn_info["database_uri"])
            _register_models(domain, provider)
            provider._metadata.drop_all(engine)
            touched.append(name)
            logger.info("Database schema dropped", provider=name)
    return touched
