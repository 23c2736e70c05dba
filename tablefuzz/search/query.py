"""Search query configuration.

``SearchBuilder`` collects options fluently; ``build()`` validates them and
returns a frozen ``SearchQuery``. Validation happens here, before any
backend is touched, so a bad configuration never runs partially.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from tablefuzz.exceptions import (
    EmptySearchTermError,
    InvalidConfigurationError,
    NoSearchableColumnsError,
)
from tablefuzz.search.ast_nodes import FILTER_OPERATORS, NATIVE_OPERATORS, FieldFilter, SortKey
from tablefuzz.search.strategies import StrategyOptions, canonical_algorithm
from tablefuzz.utils.matching import EditCosts
from tablefuzz.utils.text import TermProcessor, stop_words_for

if TYPE_CHECKING:
    from tablefuzz.config import Config

log = logging.getLogger(__name__)

MATCH_MODES = ("any", "all")

CustomScore = Callable[[Any, float], float]


def _frozen_mapping(items: Mapping[str, Any] | None = None) -> Mapping[str, Any]:
    return MappingProxyType(dict(items or {}))


@dataclass(frozen=True)
class ScoringWeights:
    """Base scores of the relevance tiers, before column weights."""

    exact: float = 100.0
    prefix: float = 50.0
    contains: float = 25.0
    fuzzy: float = 10.0
    fuzzy_penalty: float = 3.0


@dataclass(frozen=True)
class RecencyBoost:
    """Boost newer records: ``multiplier`` at day 0 decaying to 1.0 at ``days``."""

    multiplier: float = 1.5
    column: str = "created_at"
    days: int = 30


@dataclass(frozen=True)
class Highlight:
    open_tag: str = "<em>"
    close_tag: str = "</em>"


@dataclass(frozen=True)
class SearchQuery:
    """Validated, immutable search configuration."""

    term: str
    columns: tuple[tuple[str, float], ...]
    algorithm: str = "fuzzy"
    options: Mapping[str, Any] = field(default_factory=_frozen_mapping, hash=False)
    match_mode: str = "any"
    tokenize: bool = False
    typo_tolerance: int = 2
    prefix_boost: float = 1.0
    min_match_length: int = 2
    stop_words: frozenset[str] = frozenset()
    synonyms: Mapping[str, tuple[str, ...]] = field(default_factory=_frozen_mapping, hash=False)
    synonym_groups: tuple[tuple[str, ...], ...] = ()
    locale: str = "en"
    accent_insensitive: bool = False
    unicode_normalize: bool = False
    fallback_algorithms: tuple[str, ...] = ()
    recency: RecencyBoost | None = None
    limit: int = 15
    offset: int = 0
    cache_ttl: int | None = None
    filters: tuple[FieldFilter, ...] = ()
    sort_by: tuple[SortKey, ...] = ()
    facets: tuple[str, ...] = ()
    allow_empty: bool = False
    max_patterns: int = 100
    use_native: bool = False
    stable_ranking: bool = False
    identity_column: str = "id"
    debug: bool = False
    with_relevance: bool = True
    highlight: Highlight | None = None
    costs: EditCosts = EditCosts()
    scoring: ScoringWeights = ScoringWeights()
    custom_score: CustomScore | None = field(default=None, compare=False)

    @property
    def weights(self) -> dict[str, float]:
        return dict(self.columns)

    @property
    def column_names(self) -> list[str]:
        return [name for name, _ in self.columns]

    def term_processor(self) -> TermProcessor:
        return TermProcessor(
            unicode_normalize=self.unicode_normalize,
            accent_insensitive=self.accent_insensitive,
            stop_words=self.stop_words,
        )

    @property
    def processed_term(self) -> str:
        return self.term_processor().process(self.term)

    def strategy_options(self, backend_operators: Iterable[str] = ()) -> StrategyOptions:
        """Strategy options for this query given the operators a backend supports."""
        native = frozenset(backend_operators) & NATIVE_OPERATORS if self.use_native else frozenset()
        opts = self.options
        return StrategyOptions(
            max_distance=int(opts.get("max_distance", self.typo_tolerance)),
            max_patterns=self.max_patterns,
            min_tolerant_length=self.min_match_length,
            trigram_limit=int(opts.get("trigram_limit", 10)),
            min_similarity=float(opts.get("min_similarity", 0.3)),
            native_operators=native,
        )

    def with_algorithm(self, algorithm: str) -> SearchQuery:
        return dataclasses.replace(self, algorithm=canonical_algorithm(algorithm))

    def fallback_queries(self) -> list[SearchQuery]:
        """Queries for each fallback algorithm, in order, to be tried by the caller."""
        return [
            dataclasses.replace(self, algorithm=name, fallback_algorithms=())
            for name in self.fallback_algorithms
        ]

    def next_page(self) -> SearchQuery:
        return dataclasses.replace(self, offset=self.offset + self.limit)


def _clamp(value: float, low: float, high: float | None = None) -> float:
    value = max(low, value)
    if high is not None:
        value = min(high, value)
    return value


class SearchBuilder:
    """Fluent builder for ``SearchQuery``.

    Setters clamp numeric options into range; everything that can be wrong
    in a way clamping cannot fix is reported by ``build()``.
    """

    def __init__(self, term: str = "") -> None:
        self._term = term
        self._columns: dict[str, float] = {}
        self._searchable: frozenset[str] | None = None
        self._algorithm = "fuzzy"
        self._options: dict[str, Any] = {}
        self._costs: Mapping[str, object] | None = None
        self._filters: list[FieldFilter] = []
        self._sort: list[SortKey] = []
        self._fallback: list[str] = []
        self._settings: dict[str, Any] = {}

    # -- term and columns -----------------------------------------------------

    def search(self, term: str) -> SearchBuilder:
        self._term = term
        return self

    def in_columns(self, columns: Mapping[str, float] | Sequence[str]) -> SearchBuilder:
        """Set the searched columns, either as names (weight 1) or a weight map."""
        if isinstance(columns, Mapping):
            self._columns = dict(columns)
        else:
            self._columns = dict.fromkeys(columns, 1.0)
        return self

    def weight(self, column: str, weight: float) -> SearchBuilder:
        self._columns[column] = weight
        return self

    def searchable(self, columns: Iterable[str]) -> SearchBuilder:
        """Restrict columns to a known set, such as the columns of a table."""
        self._searchable = frozenset(columns)
        return self

    # -- algorithm ------------------------------------------------------------

    def using(self, algorithm: str) -> SearchBuilder:
        self._algorithm = algorithm
        return self

    def with_options(self, **options: Any) -> SearchBuilder:
        self._options.update(options)
        return self

    def fallback(self, *algorithms: str) -> SearchBuilder:
        self._fallback.extend(algorithms)
        return self

    def costs(self, costs: Mapping[str, object]) -> SearchBuilder:
        """Levenshtein costs as ``cost_insert``/``cost_replace``/``cost_delete``."""
        self._costs = dict(costs)
        return self

    def max_patterns(self, n: int) -> SearchBuilder:
        self._settings["max_patterns"] = int(_clamp(n, 10))
        return self

    def use_native(self, enabled: bool = True) -> SearchBuilder:
        self._settings["use_native"] = enabled
        return self

    # -- term processing ------------------------------------------------------

    def match_all(self) -> SearchBuilder:
        self._settings["match_mode"] = "all"
        self._settings["tokenize"] = True
        return self

    def match_any(self) -> SearchBuilder:
        self._settings["match_mode"] = "any"
        return self

    def match_mode(self, mode: str) -> SearchBuilder:
        self._settings["match_mode"] = mode
        return self

    def tokenize(self, enabled: bool = True) -> SearchBuilder:
        self._settings["tokenize"] = enabled
        return self

    def typo_tolerance(self, level: int) -> SearchBuilder:
        level = int(_clamp(level, 0, 5))
        self._settings["typo_tolerance"] = level
        self._options["max_distance"] = level
        return self

    def prefix_boost(self, multiplier: float) -> SearchBuilder:
        self._settings["prefix_boost"] = _clamp(multiplier, 1.0)
        return self

    def min_match_length(self, length: int) -> SearchBuilder:
        self._settings["min_match_length"] = int(_clamp(length, 1))
        return self

    def ignore_stop_words(self, stop_words: str | Iterable[str] | None = None) -> SearchBuilder:
        """Drop stop words: a locale name, an explicit word list, or English by default."""
        if stop_words is None:
            words = stop_words_for("en")
        elif isinstance(stop_words, str):
            self._settings["locale"] = stop_words
            words = stop_words_for(stop_words)
        else:
            words = frozenset(w.lower() for w in stop_words)
        self._settings["stop_words"] = words
        return self

    def synonyms(self, synonyms: Mapping[str, Sequence[str]]) -> SearchBuilder:
        current = dict(self._settings.get("synonyms", {}))
        current.update({k: tuple(v) for k, v in synonyms.items()})
        self._settings["synonyms"] = current
        return self

    def synonym_group(self, words: Sequence[str]) -> SearchBuilder:
        groups = self._settings.get("synonym_groups", ())
        self._settings["synonym_groups"] = (*groups, tuple(words))
        return self

    def locale(self, locale: str) -> SearchBuilder:
        self._settings["locale"] = locale
        return self

    def accent_insensitive(self, enabled: bool = True) -> SearchBuilder:
        self._settings["accent_insensitive"] = enabled
        return self

    def unicode_normalize(self, enabled: bool = True) -> SearchBuilder:
        self._settings["unicode_normalize"] = enabled
        return self

    def allow_empty(self, enabled: bool = True) -> SearchBuilder:
        self._settings["allow_empty"] = enabled
        return self

    # -- filters and ordering -------------------------------------------------

    def where(self, field_name: str, operator: str, value: Any = None) -> SearchBuilder:
        """Add a filter; ``where("status", "active")`` means equality."""
        if value is None and operator not in FILTER_OPERATORS:
            operator, value = "=", operator
        self._filters.append(FieldFilter(field_name, operator.lower(), value))
        return self

    def where_in(self, field_name: str, values: Iterable[Any]) -> SearchBuilder:
        self._filters.append(FieldFilter(field_name, "in", tuple(values)))
        return self

    def where_not(self, field_name: str, operator: str, value: Any = None) -> SearchBuilder:
        if value is None and operator not in FILTER_OPERATORS:
            operator, value = "=", operator
        self._filters.append(FieldFilter(field_name, operator.lower(), value, negated=True))
        return self

    def order_by(self, column: str, direction: str = "asc") -> SearchBuilder:
        self._sort.append(SortKey(column, descending=direction.lower() == "desc"))
        return self

    def stable_ranking(self, identity_column: str = "id") -> SearchBuilder:
        self._settings["stable_ranking"] = True
        self._settings["identity_column"] = identity_column
        return self

    def facets(self, *columns: str) -> SearchBuilder:
        self._settings["facets"] = columns
        return self

    # -- scoring --------------------------------------------------------------

    def boost_recent(
        self, multiplier: float = 1.5, column: str = "created_at", days: int = 30
    ) -> SearchBuilder:
        self._settings["recency"] = RecencyBoost(
            multiplier=_clamp(multiplier, 1.0), column=column, days=int(_clamp(days, 1))
        )
        return self

    def custom_score(self, fn: CustomScore) -> SearchBuilder:
        self._settings["custom_score"] = fn
        return self

    def scoring(self, weights: ScoringWeights) -> SearchBuilder:
        self._settings["scoring"] = weights
        return self

    def with_relevance(self, enabled: bool = True) -> SearchBuilder:
        self._settings["with_relevance"] = enabled
        return self

    # -- output ---------------------------------------------------------------

    def limit(self, n: int) -> SearchBuilder:
        self._settings["limit"] = max(0, int(n))
        return self

    take = limit

    def offset(self, n: int) -> SearchBuilder:
        self._settings["offset"] = max(0, int(n))
        return self

    def page(self, page: int, per_page: int = 15) -> SearchBuilder:
        """Select a 1-based page of ``per_page`` results."""
        per_page = max(1, int(per_page))
        self._settings["limit"] = per_page
        self._settings["offset"] = (max(1, int(page)) - 1) * per_page
        return self

    def cache(self, ttl: int | None) -> SearchBuilder:
        """Cache results for ``ttl`` seconds; 0 or None disables caching."""
        self._settings["cache_ttl"] = ttl
        return self

    def highlight(self, tag_or_open: str = "em", close: str | None = None) -> SearchBuilder:
        if close is None:
            self._settings["highlight"] = Highlight(f"<{tag_or_open}>", f"</{tag_or_open}>")
        else:
            self._settings["highlight"] = Highlight(tag_or_open, close)
        return self

    def debug(self, enabled: bool = True) -> SearchBuilder:
        self._settings["debug"] = enabled
        if enabled:
            self._settings["with_relevance"] = True
        return self

    # -- configuration --------------------------------------------------------

    @classmethod
    def from_config(
        cls, config: Config, preset: str | None = None, **overrides: Any
    ) -> SearchBuilder:
        """Create a builder from configuration layers.

        Precedence is ``overrides`` over the named preset over the global
        config values.
        """
        from tablefuzz.config import resolve_options

        builder = cls()
        opts = resolve_options(config, preset, overrides)
        builder._apply_options(opts, config)
        return builder

    def _apply_options(self, opts: Mapping[str, Any], config: Config) -> None:
        self.using(opts["algorithm"])
        self.typo_tolerance(opts["typo_tolerance"])
        self.prefix_boost(opts["prefix_boost"])
        self.min_match_length(opts["min_match_length"])
        self.max_patterns(opts["max_patterns"])
        self.use_native(opts["use_native"])
        self.allow_empty(opts["allow_empty"])
        self.locale(opts["locale"])
        self.accent_insensitive(opts["accent_insensitive"])
        self.unicode_normalize(opts["unicode_normalize"])
        self.with_options(min_similarity=opts["min_similarity"])
        self.costs(opts["costs"])
        self.scoring(opts["scoring"])
        if opts["columns"]:
            self.in_columns(opts["columns"])
        if opts["match_mode"] == "all":
            self.match_all()
        if opts["tokenize"]:
            self.tokenize()
        if opts["stop_words"]:
            self._settings["stop_words"] = frozenset(w.lower() for w in opts["stop_words"])
        if opts["synonyms"]:
            self.synonyms(opts["synonyms"])
        for group in opts["synonym_groups"]:
            self.synonym_group(group)
        if opts["cache_ttl"]:
            self.cache(opts["cache_ttl"])
        if opts["fallback"]:
            self.fallback(*opts["fallback"])
        if opts["highlight"]:
            self.highlight(config.highlight_open, config.highlight_close)

    def build(self) -> SearchQuery:
        """Validate and freeze the configuration.

        Raises:
            NoSearchableColumnsError: No columns were configured.
            InvalidConfigurationError: Bad weights, columns outside the
                searchable set, unknown match mode, malformed costs or
                filters, or a fallback repeating the primary algorithm.
            InvalidAlgorithmError: Unknown primary or fallback algorithm.
            EmptySearchTermError: Empty processed term without allow_empty.
        """
        if not self._columns:
            raise NoSearchableColumnsError()

        for column, weight in self._columns.items():
            if isinstance(weight, bool) or not isinstance(weight, (int, float)):
                raise InvalidConfigurationError(
                    f"weights.{column}", weight, "weight must be a number"
                )
            if weight < 0:
                raise InvalidConfigurationError(f"weights.{column}", weight, "weight must be >= 0")

        if self._searchable is not None:
            unknown = [c for c in self._columns if c not in self._searchable]
            if unknown:
                raise InvalidConfigurationError(
                    "columns", unknown, f"not searchable: {', '.join(sorted(unknown))}"
                )

        algorithm = canonical_algorithm(self._algorithm)
        fallback: list[str] = []
        for name in self._fallback:
            resolved = canonical_algorithm(name)
            if resolved == algorithm:
                raise InvalidConfigurationError(
                    "fallback", name, f"fallback repeats the primary algorithm '{algorithm}'"
                )
            if resolved not in fallback:
                fallback.append(resolved)

        mode = self._settings.get("match_mode", "any")
        if mode not in MATCH_MODES:
            raise InvalidConfigurationError("match_mode", mode, "must be 'any' or 'all'")

        for flt in self._filters:
            if flt.operator not in FILTER_OPERATORS:
                raise InvalidConfigurationError(
                    f"filters.{flt.field}", flt.operator, "unsupported filter operator"
                )

        costs = EditCosts.from_mapping(self._costs)
        settings = dict(self._settings)
        if "synonyms" in settings:
            settings["synonyms"] = _frozen_mapping(settings["synonyms"])

        query = SearchQuery(
            term=self._term,
            columns=tuple((c, float(w)) for c, w in self._columns.items()),
            algorithm=algorithm,
            options=_frozen_mapping(self._options),
            fallback_algorithms=tuple(fallback),
            filters=tuple(self._filters),
            sort_by=tuple(self._sort),
            costs=costs,
            **settings,
        )

        if not query.processed_term and not query.allow_empty:
            raise EmptySearchTermError(self._term)

        log.debug("Built query %r using %s", query.term, query.algorithm)
        return query
