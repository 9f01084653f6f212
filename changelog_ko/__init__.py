"""
changelog-ko: multi-provider translation of software changelogs into Korean.

Usage:
    from changelog_ko import TranslationOrchestrator, load_config

    config = load_config()
    orchestrator = TranslationOrchestrator.from_config(config)
    context = orchestrator.new_context()
    outcome = orchestrator.translate(["feat: add dark mode"], context)
"""

__version__ = "1.0.0"
__license__ = "MIT"

from changelog_ko.core.exceptions import (
    ChangelogKoError,
    ConfigurationError,
    ErrorKind,
    ProviderError,
    TranslationFailedError,
)
from changelog_ko.core.models import (
    Batch,
    GroupResult,
    RunContext,
    TranslationOutcome,
    TranslationRequest,
)
from changelog_ko.translation.orchestrator import TranslationOrchestrator
from changelog_ko.utils.config_loader import load_config

__all__ = [
    "__version__",
    "ChangelogKoError",
    "ConfigurationError",
    "ErrorKind",
    "ProviderError",
    "TranslationFailedError",
    "Batch",
    "GroupResult",
    "RunContext",
    "TranslationOutcome",
    "TranslationRequest",
    "TranslationOrchestrator",
    "load_config",
]
