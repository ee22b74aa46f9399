"""shipit - AI-assisted Conventional Commits from your working tree."""

from importlib import import_module

__version__ = "0.1.0"

# Public API (lazy-exported to avoid import-time side effects)
__all__ = [
    # Config
    "ProviderConfig", "resolve_provider_config",
    # LLM
    "LLMClient",
    # Git
    "GitRepo",
    # Core workflow
    "ShipitWorkflow", "WorkflowOptions", "CommitResult", "WorkflowResult",
    # Follow-ups
    "handle_push", "create_pull_request",
    # Exceptions
    "ShipitError", "ConfigError", "GitError", "LLMError", "RepositoryStateError",
]


def __getattr__(name: str):
    """Lazy attribute loader so importing the package stays cheap.

    Provider SDKs and the tokenizer are only imported when a caller reaches
    for something that needs them.
    """
    mapping = {
        # Config
        "ProviderConfig": ("shipit.config", "ProviderConfig"),
        "resolve_provider_config": ("shipit.config", "resolve_provider_config"),
        # LLM
        "LLMClient": ("shipit.llm", "LLMClient"),
        # Git
        "GitRepo": ("shipit.git", "GitRepo"),
        # Core workflow
        "ShipitWorkflow": ("shipit.core", "ShipitWorkflow"),
        "WorkflowOptions": ("shipit.core", "WorkflowOptions"),
        "CommitResult": ("shipit.core", "CommitResult"),
        "WorkflowResult": ("shipit.core", "WorkflowResult"),
        # Follow-ups
        "handle_push": ("shipit.push", "handle_push"),
        "create_pull_request": ("shipit.pr", "create_pull_request"),
        # Exceptions
        "ShipitError": ("shipit.exceptions", "ShipitError"),
        "ConfigError": ("shipit.exceptions", "ConfigError"),
        "GitError": ("shipit.exceptions", "GitError"),
        "LLMError": ("shipit.exceptions", "LLMError"),
        "RepositoryStateError": ("shipit.exceptions", "RepositoryStateError"),
    }
    if name in mapping:
        mod_name, attr = mapping[name]
        mod = import_module(mod_name)
        value = getattr(mod, attr)
        globals()[name] = value  # cache for future access
        return value
    raise AttributeError(f"module 'shipit' has no attribute {name!r}")
