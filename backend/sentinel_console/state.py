"""Process-wide backend client, rule store, engine and activation workflow."""

from sentinel_console.clients.backend import BackendClient
from sentinel_console.config import settings
from sentinel_console.rules.store import RuleStore
from sentinel_console.services.activation import ActivationWorkflow
from sentinel_console.services.rule_engine import RuleEngine

backend_client = BackendClient(
    settings.normalized_backend_url,
    timeout=settings.backend_api_timeout_seconds,
)
rule_store = RuleStore()
rule_engine = RuleEngine(rule_store, backend_client)
activation_workflow = ActivationWorkflow(rule_store, backend_client)


def get_backend_client() -> BackendClient:
    """Backend client for FastAPI dependency injection."""
    return backend_client


def get_rule_engine() -> RuleEngine:
    return rule_engine


def get_activation_workflow() -> ActivationWorkflow:
    return activation_workflow
