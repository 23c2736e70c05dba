"""tablefuzz: typo-tolerant search and relevance ranking over tabular data."""

from tablefuzz.search import (
    FederatedSearch,
    SearchBuilder,
    SearchEngine,
    SearchQuery,
    SearchTarget,
)

__version__ = "0.1.0"

__all__ = [
    "FederatedSearch",
    "SearchBuilder",
    "SearchEngine",
    "SearchQuery",
    "SearchTarget",
    "__version__",
]
