"""Route raw bookmaker payloads to the matching normalizer."""
from typing import Any, Callable, Dict, Optional

from .models import OddsBook
from .mostbet_odds import normalize_mostbet
from .onexbet_odds import normalize_onexbet

NORMALIZERS: Dict[str, Callable[[Optional[Dict[str, Any]], str], OddsBook]] = {
    "mostbet": normalize_mostbet,
    "melbet": normalize_onexbet,
    "1xbet": normalize_onexbet,
}


def normalize(source_id: str, payload: Optional[Dict[str, Any]]) -> OddsBook:
    """
    Build the canonical OddsBook for one fixture at one bookmaker.

    Args:
        source_id: Bookmaker key ('mostbet', 'melbet' or '1xbet')
        payload: Raw decoded JSON as returned by the bookmaker

    Returns:
        OddsBook; ``success`` is False when the payload holds no match

    Raises:
        ValueError: If there is no normalizer for ``source_id``
    """
    key = source_id.lower()
    if key not in NORMALIZERS:
        raise ValueError(f"Unknown source: {source_id}. Choose from: {', '.join(NORMALIZERS)}")
    return NORMALIZERS[key](payload, key)
