"""
Runtime settings and provider configuration
"""

import json
import logging
import os
import tempfile
import threading
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Dict, FrozenSet, List, Optional

from dotenv import load_dotenv

from .errors import ProviderNotConfigured
from .llm.providers import DEFAULT_MODELS, ProviderKind

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".schema-forge" / "config.json"
DEFAULT_DESTRUCTIVE_VERBS = frozenset({'drop', 'truncate', 'delete', 'update', 'alter'})

# Environment variables consulted when the config file has no key for a provider
API_KEY_ENV_VARS = {
    ProviderKind.ANTHROPIC: 'ANTHROPIC_API_KEY',
    ProviderKind.OPENAI: 'OPENAI_API_KEY',
    ProviderKind.GROQ: 'GROQ_API_KEY',
    ProviderKind.COHERE: 'COHERE_API_KEY',
    ProviderKind.XAI: 'XAI_API_KEY',
    ProviderKind.MINIMAX: 'MINIMAX_API_KEY',
    ProviderKind.QWEN: 'DASHSCOPE_API_KEY',
    ProviderKind.ZAI: 'ZAI_API_KEY',
}


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value == '':
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def _env_number(name: str, default, cast):
    value = os.getenv(name)
    if value is None or value.strip() == '':
        return default
    try:
        return cast(value)
    except ValueError:
        logger.warning(f"Ignoring invalid value for {name}: {value!r}")
        return default


@dataclass(frozen=True)
class Settings:
    """Process-wide knobs, read once at startup"""
    config_path: Path = DEFAULT_CONFIG_PATH
    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    jitter: bool = False
    request_timeout: float = 60.0
    max_turns: Optional[int] = 20
    log_level: str = 'WARNING'
    destructive_verbs: FrozenSet[str] = DEFAULT_DESTRUCTIVE_VERBS


def load_settings(env_file: Optional[str] = None) -> Settings:
    """Build Settings from the environment (and a .env file, if present)"""
    load_dotenv(env_file)

    max_turns = _env_number('SCHEMA_FORGE_MAX_TURNS', 20, int)
    verbs = os.getenv('SCHEMA_FORGE_DESTRUCTIVE_VERBS')
    destructive_verbs = DEFAULT_DESTRUCTIVE_VERBS
    if verbs:
        destructive_verbs = frozenset(v.strip().lower() for v in verbs.split(',') if v.strip())

    return Settings(
        config_path=Path(os.getenv('SCHEMA_FORGE_CONFIG') or DEFAULT_CONFIG_PATH).expanduser(),
        max_attempts=max(1, _env_number('SCHEMA_FORGE_MAX_ATTEMPTS', 3, int)),
        base_delay=max(0.0, _env_number('SCHEMA_FORGE_BASE_DELAY', 1.0, float)),
        max_delay=max(0.0, _env_number('SCHEMA_FORGE_MAX_DELAY', 30.0, float)),
        jitter=_env_bool('SCHEMA_FORGE_JITTER', False),
        request_timeout=_env_number('SCHEMA_FORGE_REQUEST_TIMEOUT', 60.0, float),
        max_turns=max_turns if max_turns and max_turns > 0 else None,
        log_level=(os.getenv('SCHEMA_FORGE_LOG_LEVEL') or 'WARNING').upper(),
        destructive_verbs=destructive_verbs,
    )


def mask_key(key: str) -> str:
    if not key:
        return ''
    if len(key) > 8:
        return f"{key[:4]}...{key[-4:]}"
    return '***'


@dataclass(frozen=True)
class ProviderConfig:
    """API key and model choice for one provider"""
    provider: ProviderKind
    api_key: str
    model: Optional[str] = None

    @property
    def effective_model(self) -> str:
        return self.model or DEFAULT_MODELS[self.provider]

    def __repr__(self) -> str:
        return (f"ProviderConfig(provider={self.provider.value!r}, "
                f"api_key={mask_key(self.api_key)!r}, model={self.effective_model!r})")


class ConfigStore:
    """Provider configurations plus which provider is current.

    Entries are immutable ProviderConfig objects; ``configure`` swaps in a
    new dict under a lock, so readers always see a complete config.
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else None
        self._lock = threading.Lock()
        self._configs: Dict[ProviderKind, ProviderConfig] = {}
        self._current: Optional[ProviderKind] = None

    @classmethod
    def load(cls, path: Optional[Path] = None, use_env: bool = True) -> "ConfigStore":
        """Read the JSON config file, then fill gaps from <PROVIDER>_API_KEY variables"""
        store = cls(path)
        data = {}
        if store.path and store.path.exists():
            try:
                with open(store.path, 'r', encoding='utf-8') as f:
                    data = json.load(f)
            except (OSError, ValueError) as e:
                logger.error(f"Failed to load config {store.path}: {e}")
                data = {}

        configs: Dict[ProviderKind, ProviderConfig] = {}
        for name, entry in (data.get('providers') or {}).items():
            try:
                kind = ProviderKind.parse(name)
            except ProviderNotConfigured:
                logger.warning(f"Ignoring unknown provider in config: {name}")
                continue
            if not isinstance(entry, dict) or not entry.get('api_key'):
                continue
            configs[kind] = ProviderConfig(kind, entry['api_key'], entry.get('model') or None)

        if use_env:
            for kind, env_var in API_KEY_ENV_VARS.items():
                key = os.getenv(env_var)
                if key and kind not in configs:
                    configs[kind] = ProviderConfig(kind, key)

        current = None
        if data.get('current_provider'):
            try:
                current = ProviderKind.parse(data['current_provider'])
            except ProviderNotConfigured:
                current = None
        if current not in configs:
            current = next(iter(configs), None)

        store._configs = configs
        store._current = current
        return store

    def configure(self, provider, api_key: str, model: Optional[str] = None) -> ProviderConfig:
        """Set the key (and optionally model) for a provider; the single write path for keys"""
        kind = provider if isinstance(provider, ProviderKind) else ProviderKind.parse(provider)
        api_key = (api_key or '').strip()
        if not api_key:
            raise ValueError("API key must not be empty")

        with self._lock:
            previous = self._configs.get(kind)
            if model is None and previous is not None:
                model = previous.model
            config = ProviderConfig(kind, api_key, model or None)
            configs = dict(self._configs)
            configs[kind] = config
            self._configs = configs
            if self._current is None:
                self._current = kind
        logger.info(f"Configured provider {kind.value} ({mask_key(api_key)})")
        return config

    def set_model(self, provider, model: str) -> ProviderConfig:
        kind = provider if isinstance(provider, ProviderKind) else ProviderKind.parse(provider)
        with self._lock:
            previous = self._configs.get(kind)
            if previous is None:
                raise ProviderNotConfigured(kind.value)
            config = replace(previous, model=model or None)
            configs = dict(self._configs)
            configs[kind] = config
            self._configs = configs
        return config

    def use(self, provider) -> ProviderConfig:
        """Make a configured provider the current one"""
        kind = provider if isinstance(provider, ProviderKind) else ProviderKind.parse(provider)
        with self._lock:
            config = self._configs.get(kind)
            if config is None:
                raise ProviderNotConfigured(kind.value)
            self._current = kind
        return config

    def get(self, provider) -> Optional[ProviderConfig]:
        kind = provider if isinstance(provider, ProviderKind) else ProviderKind.parse(provider)
        return self._configs.get(kind)

    def current(self) -> Optional[ProviderConfig]:
        current = self._current
        if current is None:
            return None
        return self._configs.get(current)

    def require_current(self) -> ProviderConfig:
        config = self.current()
        if config is None:
            raise ProviderNotConfigured()
        return config

    def providers(self) -> List[ProviderConfig]:
        return list(self._configs.values())

    def to_dict(self) -> Dict:
        configs = self._configs
        return {
            'providers': {
                kind.value: {'api_key': config.api_key, 'model': config.model}
                for kind, config in configs.items()
            },
            'current_provider': self._current.value if self._current else None,
        }

    def save(self) -> None:
        """Write the config file atomically (temp file + rename)"""
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        data = self.to_dict()
        fd, tmp_path = tempfile.mkstemp(dir=str(self.path.parent), prefix='.config-', suffix='.json')
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            os.chmod(tmp_path, 0o600)
            os.replace(tmp_path, self.path)
        except OSError:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
