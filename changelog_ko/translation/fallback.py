"""
Policy-based provider fallback chain.

The chain is decided once from configuration: an explicit
``translation.fallback_chain`` wins, otherwise the providers that have
credentials are used in priority order. ``mock`` always closes the chain.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from changelog_ko.core.exceptions import ConfigurationError
from changelog_ko.utils.logger import get_logger

logger = get_logger(__name__)

VALID_ENGINES = ("auto", "gemini", "glm", "openai", "google", "mock")
KNOWN_PROVIDERS = tuple(e for e in VALID_ENGINES if e != "auto")
DEFAULT_PRIORITY = ("gemini", "glm", "openai", "google", "mock")


def parse_fallback_chain(value: Optional[str]) -> List[str]:
    """
    Parse "gemini, GLM,,mock" into ["gemini", "glm", "mock"].

    Lists are accepted as well (YAML configs).
    """
    if not value:
        return []
    parts = value if isinstance(value, (list, tuple)) else str(value).split(",")
    return [p.strip().lower() for p in parts if p and p.strip()]


def _validate_engine(engine: str) -> str:
    engine = (engine or "auto").strip().lower()
    if engine not in VALID_ENGINES:
        raise ConfigurationError(
            f'Invalid translation engine "{engine}". Valid values: {", ".join(VALID_ENGINES)}',
            config_key="translation.engine",
            invalid_value=engine,
            valid_values=list(VALID_ENGINES)
        )
    return engine


@dataclass(frozen=True)
class FallbackPolicy:
    """Primary engine plus the ordered chain of providers to fall back to."""
    engine: str
    chain: Tuple[str, ...]
    available: Tuple[str, ...]

    @classmethod
    def from_config(cls, config: Dict[str, Any], providers) -> "FallbackPolicy":
        """
        Build the policy.

        Args:
            config: Loaded configuration
            providers: ProviderTable used for credential checks

        Raises:
            ConfigurationError: unknown engine or unknown provider in an
                explicit chain
        """
        translation = config.get("translation", {})
        engine = _validate_engine(translation.get("engine", "auto"))
        available = tuple(name for name in KNOWN_PROVIDERS if providers.is_available(name))

        explicit = parse_fallback_chain(translation.get("fallback_chain"))
        if explicit:
            unknown = [name for name in explicit if name not in KNOWN_PROVIDERS]
            if unknown:
                raise ConfigurationError(
                    f"Unknown provider(s) in fallback chain: {', '.join(unknown)}",
                    config_key="translation.fallback_chain",
                    invalid_value=translation.get("fallback_chain"),
                    valid_values=list(KNOWN_PROVIDERS)
                )
            chain = []
            for name in explicit:
                if name not in chain:
                    chain.append(name)
            if "mock" not in chain:
                chain.append("mock")
        else:
            chain = [name for name in DEFAULT_PRIORITY if name in available or name == "mock"]

        policy = cls(engine=engine, chain=tuple(chain), available=available)
        logger.debug(f"Fallback chain: {' -> '.join(policy.chain)} (engine={engine})")
        return policy

    def is_provider_available(self, name: str) -> bool:
        return name == "mock" or name in self.available

    def select_primary_engine(self) -> str:
        """
        Configured engine, or for ``auto`` the first available provider in
        the chain (``mock`` at worst).
        """
        engine = _validate_engine(self.engine)
        if engine != "auto":
            return engine
        for name in self.chain:
            if self.is_provider_available(name):
                return name
        return "mock"

    def get_fallback_providers(self, primary: str) -> List[str]:
        """Providers after ``primary`` in the chain; the whole chain if absent."""
        if primary not in self.chain:
            return list(self.chain)
        return list(self.chain[self.chain.index(primary) + 1:])

    def provider_order(self) -> List[str]:
        """Primary engine followed by its fallbacks."""
        primary = self.select_primary_engine()
        return [primary] + self.get_fallback_providers(primary)
