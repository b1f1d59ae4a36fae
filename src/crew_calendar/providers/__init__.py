"""Persistence backends for the availability document."""

from __future__ import annotations

import logging
from typing import Optional, Tuple

from ..config import AppSettings
from .base import PersistenceProvider
from .functions import FunctionsProvider
from .github import GitHubProvider
from .local import LocalFileProvider
from .supabase import SupabaseProvider

logger = logging.getLogger(__name__)


def build_providers(settings: AppSettings) -> Tuple[PersistenceProvider, Optional[PersistenceProvider]]:
    """Return the primary provider for the configured backend and its local fallback."""

    storage = settings.storage
    fallback = LocalFileProvider(storage.fallback_file)
    if storage.backend == "functions":
        if settings.functions.is_configured:
            return FunctionsProvider(settings.functions), fallback
        missing = settings.functions.missing_env_vars
    elif storage.backend == "github":
        if settings.github.is_configured:
            return GitHubProvider(settings.github), fallback
        missing = settings.github.missing_env_vars
    elif storage.backend == "supabase":
        if settings.supabase.is_configured:
            return SupabaseProvider(settings.supabase), fallback
        missing = settings.supabase.missing_env_vars
    else:
        return LocalFileProvider(storage.data_file), None
    logger.warning(
        "%s storage is not configured (missing %s); using local file storage",
        storage.backend,
        ", ".join(missing),
    )
    return LocalFileProvider(storage.data_file), None


__all__ = [
    "FunctionsProvider",
    "GitHubProvider",
    "LocalFileProvider",
    "PersistenceProvider",
    "SupabaseProvider",
    "build_providers",
]
