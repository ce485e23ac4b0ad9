"""Venue name canonicalization."""
import re
from typing import Dict, Iterable, Optional, Sequence

WHITESPACE = re.compile(r'\s+')

# canonical spelling -> known variants (already lower-cased)
DEFAULT_ALIAS_SETS: Dict[str, Sequence[str]] = {
    'martin luther king': (
        'martin luther king, jr.',
        'martin luther king jr.',
        'martin luther king, jr',
        'martin luther king jr',
        'mlk jr.',
        'mlk jr',
        'mlk',
    ),
}


class VenueNormalizer:
    """Derives the canonical key used to deduplicate venues."""

    def __init__(self, alias_sets: Optional[Dict[str, Iterable[str]]] = None):
        """
        Initialize the normalizer.

        Args:
            alias_sets: Mapping of canonical spelling to variants
                (default: DEFAULT_ALIAS_SETS)
        """
        self._aliases: Dict[str, str] = {}
        self._pattern = None
        for canonical, variants in (alias_sets or DEFAULT_ALIAS_SETS).items():
            self.register(canonical, variants)

    def register(self, canonical: str, variants: Iterable[str]) -> None:
        """Add a set of textual variants that fold into one spelling."""
        canonical = self._collapse(canonical)
        for variant in variants:
            self._aliases[self._collapse(variant)] = canonical
        self._pattern = self._build_pattern()

    def canonical_key(self, name: Optional[str]) -> str:
        """
        Compute the canonical key for a venue name.

        Args:
            name: Raw venue name

        Returns:
            Lower-cased, whitespace-collapsed, alias-folded key ('' if empty)
        """
        if not name:
            return ''
        key = self._collapse(name)
        if self._pattern is None or not key:
            return key
        return self._pattern.sub(lambda m: self._aliases[m.group(1)], key)

    def _build_pattern(self):
        if not self._aliases:
            return None
        # Longest variant first so "mlk jr." wins over "mlk".
        variants = sorted(self._aliases, key=len, reverse=True)
        alternation = '|'.join(re.escape(v) for v in variants)
        return re.compile(rf'(?<!\w)({alternation})(?!\w)')

    @staticmethod
    def _collapse(value: str) -> str:
        return WHITESPACE.sub(' ', value.strip().lower())
