"""Archivist configuration loader.

Priority (high → low):
  1. CLI flags           (handled at call site — not in this module)
  2. Environment variables  (ARCHIVIST_EMBEDDING_MODEL, ARCHIVIST_GENERATION_MODEL,
                             ARCHIVIST_DB)
  3. Per-project archivist.yaml  (in the working directory)
  4. Global ~/.archivist/config.yaml  (model defaults only — no API keys)
  5. Hardcoded defaults

Global config must never contain API keys; use environment variables instead.
All YAML reads use yaml.safe_load() — never yaml.load().
"""

from __future__ import annotations

import os
import re
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".archivist"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
_PROJECT_CONFIG_NAME: str = "archivist.yaml"

# Fields that suggest an API key — forbidden in global config.
# Does NOT match legitimate config keys like max_tokens.
_API_KEY_RE: re.Pattern[str] = re.compile(
    r"api[_\-]?(?:key|secret)"
    r"|_token$"
    r"|^token$"
    r"|_secret$"
    r"|^secret$"
    r"|passw(?:ord|d)"
    r"|credential",
    re.IGNORECASE,
)

_KNOWN_SECTIONS: frozenset[str] = frozenset(
    ["embedding", "generation", "retrieval", "chunking", "cleaning", "store"]
)

_ID_SCHEMES: frozenset[str] = frozenset(["document", "positional"])


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(ValueError):
    """Raised when a config file contains an invalid or forbidden value."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class EmbeddingCfg:
    """Embedding model configuration (archivist.yaml: embedding:).

    Attributes:
        model: LiteLLM embedding model string (provider/model format).
        dimensions: Vector size used when a collection has to be created
            before any embedding has been produced (empty documents).
        timeout: Seconds before a single embedding call is abandoned.
        num_retries: LiteLLM retries on transient errors.
    """

    model: str = "openai/text-embedding-3-small"
    dimensions: int = 1536
    timeout: float = 30.0
    num_retries: int = 3


@dataclass
class GenerationCfg:
    """Answer synthesis configuration (archivist.yaml: generation:)."""

    model: str = "openai/gpt-4o-mini"
    max_tokens: int = 256
    temperature: float = 0.2
    timeout: float = 60.0
    num_retries: int = 3


@dataclass
class RetrievalCfg:
    """Retrieval configuration (archivist.yaml: retrieval:).

    Attributes:
        top_k: Nearest neighbours fetched from the vector store.
        context_window: Ranked chunks passed to the synthesizer (<= top_k).
        max_context_chars: Optional hard cap on the joined context length.
    """

    top_k: int = 5
    context_window: int = 3
    max_context_chars: int | None = None


@dataclass
class ChunkingCfg:
    """Chunker configuration (archivist.yaml: chunking:). Size is in words."""

    chunk_size: int = 500


@dataclass
class CleaningCfg:
    """Text cleaner configuration (archivist.yaml: cleaning:)."""

    boilerplate_marker: str = "PDF generated:"
    domains: list[str] = field(default_factory=lambda: ["constituteproject.org"])


@dataclass
class StoreCfg:
    """Vector store configuration (archivist.yaml: store:).

    Attributes:
        path: SQLite database file holding every collection.
        collection: Default collection name for ingest and ask.
        id_scheme: 'document' (<document>_<index>, collision-free) or
            'positional' (chunk_<index>, later documents overwrite).
    """

    path: str = ".archivist.db"
    collection: str = "pdf_data"
    id_scheme: str = "document"


@dataclass
class ArchivistConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    embedding: EmbeddingCfg = field(default_factory=EmbeddingCfg)
    generation: GenerationCfg = field(default_factory=GenerationCfg)
    retrieval: RetrievalCfg = field(default_factory=RetrievalCfg)
    chunking: ChunkingCfg = field(default_factory=ChunkingCfg)
    cleaning: CleaningCfg = field(default_factory=CleaningCfg)
    store: StoreCfg = field(default_factory=StoreCfg)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _check_no_api_keys(data: dict[str, Any], source: Path) -> None:
    """Raise ConfigError if *data* contains any API-key-like key names."""

    def _scan(obj: Any, path: str) -> None:
        if isinstance(obj, dict):
            for k, v in obj.items():
                full = f"{path}.{k}" if path else k
                if _API_KEY_RE.search(str(k)):
                    raise ConfigError(
                        f"Global config '{source}' contains a forbidden key '{full}'.\n"
                        f"  API keys must be set via environment variables, not config files.\n"
                        f"  Remove '{full}' from {source.name} and use:\n"
                        f"    export {str(k).upper().replace('-', '_')}=<value>"
                    )
                _scan(v, full)

    _scan(data, "")


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    """Emit a UserWarning for unrecognised top-level keys."""
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}' — ignored.",
                UserWarning,
                stacklevel=4,
            )


def _validate(cfg: ArchivistConfig) -> None:
    r = cfg.retrieval
    if r.top_k < 1:
        raise ConfigError(f"retrieval.top_k must be >= 1, got {r.top_k}")
    if not 1 <= r.context_window <= r.top_k:
        raise ConfigError(
            f"retrieval.context_window must be between 1 and top_k ({r.top_k}), "
            f"got {r.context_window}"
        )
    if r.max_context_chars is not None and r.max_context_chars < 1:
        raise ConfigError("retrieval.max_context_chars must be >= 1 when set")
    if cfg.chunking.chunk_size < 1:
        raise ConfigError(f"chunking.chunk_size must be >= 1, got {cfg.chunking.chunk_size}")
    if cfg.embedding.dimensions < 1:
        raise ConfigError(f"embedding.dimensions must be >= 1, got {cfg.embedding.dimensions}")
    if cfg.store.id_scheme not in _ID_SCHEMES:
        raise ConfigError(
            f"store.id_scheme must be one of {sorted(_ID_SCHEMES)}, got '{cfg.store.id_scheme}'"
        )
    if not cfg.store.collection:
        raise ConfigError("store.collection must not be empty")


# ---------------------------------------------------------------------------
# Merge + build
# ---------------------------------------------------------------------------


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict that is *base* deep-merged with *override*."""
    result = dict(base)
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _cfg_from_dict(data: dict[str, Any]) -> ArchivistConfig:
    """Build an *ArchivistConfig* from a merged raw YAML dict."""
    cfg = ArchivistConfig()

    if "embedding" in data:
        e = data["embedding"] or {}
        cfg.embedding = EmbeddingCfg(
            model=str(e.get("model", cfg.embedding.model)),
            dimensions=int(e.get("dimensions", cfg.embedding.dimensions)),
            timeout=float(e.get("timeout", cfg.embedding.timeout)),
            num_retries=int(e.get("num_retries", cfg.embedding.num_retries)),
        )

    if "generation" in data:
        g = data["generation"] or {}
        cfg.generation = GenerationCfg(
            model=str(g.get("model", cfg.generation.model)),
            max_tokens=int(g.get("max_tokens", cfg.generation.max_tokens)),
            temperature=float(g.get("temperature", cfg.generation.temperature)),
            timeout=float(g.get("timeout", cfg.generation.timeout)),
            num_retries=int(g.get("num_retries", cfg.generation.num_retries)),
        )

    if "retrieval" in data:
        r = data["retrieval"] or {}
        max_chars = r.get("max_context_chars", cfg.retrieval.max_context_chars)
        cfg.retrieval = RetrievalCfg(
            top_k=int(r.get("top_k", cfg.retrieval.top_k)),
            context_window=int(r.get("context_window", cfg.retrieval.context_window)),
            max_context_chars=int(max_chars) if max_chars is not None else None,
        )

    if "chunking" in data:
        ch = data["chunking"] or {}
        cfg.chunking = ChunkingCfg(
            chunk_size=int(ch.get("chunk_size", cfg.chunking.chunk_size)),
        )

    if "cleaning" in data:
        cl = data["cleaning"] or {}
        cfg.cleaning = CleaningCfg(
            boilerplate_marker=str(
                cl.get("boilerplate_marker", cfg.cleaning.boilerplate_marker)
            ),
            domains=[str(d) for d in cl.get("domains", cfg.cleaning.domains) or []],
        )

    if "store" in data:
        s = data["store"] or {}
        cfg.store = StoreCfg(
            path=str(s.get("path", cfg.store.path)),
            collection=str(s.get("collection", cfg.store.collection)),
            id_scheme=str(s.get("id_scheme", cfg.store.id_scheme)),
        )

    return cfg


def _apply_env_overrides(cfg: ArchivistConfig) -> ArchivistConfig:
    """Apply ARCHIVIST_* environment variable overrides."""
    if model := os.environ.get("ARCHIVIST_GENERATION_MODEL"):
        cfg.generation.model = model
    if model := os.environ.get("ARCHIVIST_EMBEDDING_MODEL"):
        cfg.embedding.model = model
    if db := os.environ.get("ARCHIVIST_DB"):
        cfg.store.path = db
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> ArchivistConfig:
    """Load and return a merged *ArchivistConfig*.

    Applies layers in order: global → per-project → env vars.
    CLI flag overrides must be applied by the caller after this function.

    Args:
        project_dir: Directory to search for *archivist.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Raises:
        ConfigError: If global config contains API-key-like fields, or if a
            value is out of range (e.g. context_window > top_k).
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = project_dir if project_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    if global_path.exists():
        raw_global = yaml.safe_load(global_path.read_text(encoding="utf-8")) or {}
        _check_no_api_keys(raw_global, global_path)
        _warn_unknown_keys(raw_global, global_path)
        merged = _deep_merge(merged, raw_global)

    project_cfg_path = search_dir / _PROJECT_CONFIG_NAME
    if project_cfg_path.exists():
        raw_project = yaml.safe_load(project_cfg_path.read_text(encoding="utf-8")) or {}
        _warn_unknown_keys(raw_project, project_cfg_path)
        merged = _deep_merge(merged, raw_project)

    cfg = _apply_env_overrides(_cfg_from_dict(merged))
    _validate(cfg)
    return cfg


def ensure_global_config(
    global_config_path: Path | None = None,
) -> Path:
    """Create ``~/.archivist/config.yaml`` with defaults if it does not exist.

    Creates parent directory with mode 0o700 and the config file with
    mode 0o600 (owner-readable only).
    """
    target = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    target.parent.mkdir(mode=0o700, parents=True, exist_ok=True)

    if not target.exists():
        content = (
            "# Archivist global configuration — model defaults only.\n"
            "# NEVER store API keys here — use environment variables:\n"
            "#   export OPENAI_API_KEY=sk-...\n"
            "\n"
            "embedding:\n"
            "  model: openai/text-embedding-3-small\n"
            "\n"
            "generation:\n"
            "  model: openai/gpt-4o-mini\n"
        )
        target.write_text(content, encoding="utf-8")
        target.chmod(0o600)

    return target
