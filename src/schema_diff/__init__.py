"""schema-diff: compare database schemas and generate sync scripts.

Compares two MySQL/MariaDB databases or two PostgreSQL schemas (or two
individual tables), classifies every structural difference, and renders a
deterministic DDL script the operator can filter and apply.

Usage:
    from schema_diff import SchemaComparer, Endpoint, generate_sync_script
    from schema_diff import classify_snapshots, SchemaSnapshot, SelectionModel
    from schema_diff import load_config, get_introspector
"""

__version__ = "0.1.0"

# Config
from schema_diff.config.loader import get_profile, load_config
from schema_diff.config.models import AppConfig, CompareOptions, ConnectionProfile

# Diff engine
from schema_diff.diff.apply import ApplyResult, apply_diffs
from schema_diff.diff.classifier import classify_snapshots, classify_table_pair
from schema_diff.diff.models import Diff, DiffKind, DiffSet
from schema_diff.diff.script import generate_sync_script
from schema_diff.diff.selection import SelectionModel, SyncSession

# Errors
from schema_diff.errors import (
    ComparisonInProgressError,
    InvalidSelectionError,
    MetadataFetchError,
    SchemaDiffError,
    ScriptGenerationError,
    UnknownDiffError,
)

# Factory
from schema_diff.factory import get_executor, get_introspector, resolve_url

# Schema
from schema_diff.schema.models import Engine, SchemaSnapshot, TableDescriptor

# Service
from schema_diff.service import Endpoint, SchemaComparer

__all__ = [
    # Config
    "load_config",
    "get_profile",
    "AppConfig",
    "CompareOptions",
    "ConnectionProfile",
    # Diff engine
    "classify_snapshots",
    "classify_table_pair",
    "generate_sync_script",
    "SelectionModel",
    "SyncSession",
    "apply_diffs",
    "ApplyResult",
    "Diff",
    "DiffKind",
    "DiffSet",
    # Errors
    "SchemaDiffError",
    "MetadataFetchError",
    "InvalidSelectionError",
    "ComparisonInProgressError",
    "ScriptGenerationError",
    "UnknownDiffError",
    # Factory
    "get_introspector",
    "get_executor",
    "resolve_url",
    # Schema
    "Engine",
    "SchemaSnapshot",
    "TableDescriptor",
    # Service
    "SchemaComparer",
    "Endpoint",
]
