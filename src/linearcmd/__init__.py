"""linear-cmd - Linear from the command line across several accounts.

High-level public API:

from linearcmd import AccountStore, EntityResolver, client_factory, load_settings

settings = load_settings()
store = AccountStore(settings.store_path)
resolver = EntityResolver(store, client_factory(settings))
issue = resolver.resolve_issue("https://linear.app/acme/issue/ENG-42").unwrap()
print(issue.branch_name)

The CLI (``linear-cmd`` / ``python -m linearcmd``) is a thin layer over these.
"""

from __future__ import annotations

# Version constant (keep in sync with pyproject.toml)
__version__ = "0.3.0"

from .accounts import Account, AccountStore  # noqa: E402
from .config import CliSettings, load_settings  # noqa: E402
from .identifiers import EntityKind, ParsedIdentifier, derive_branch_name, parse_identifier  # noqa: E402
from .linear_api import LinearClient, client_factory  # noqa: E402
from .resolver import EntityResolver, Resolution  # noqa: E402

__all__ = [
    "Account",
    "AccountStore",
    "CliSettings",
    "EntityKind",
    "EntityResolver",
    "LinearClient",
    "ParsedIdentifier",
    "Resolution",
    "__version__",
    "client_factory",
    "derive_branch_name",
    "load_settings",
    "parse_identifier",
]
