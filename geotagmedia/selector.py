"""
Pick the reported position closest in time to a capture date.
"""
import logging
from datetime import datetime
from typing import Iterable, Optional

from geotagmedia.models import LocationCandidate, MatchResult

logger = logging.getLogger(__name__)


def select_closest(target: datetime, candidates: Iterable[LocationCandidate]) -> Optional[MatchResult]:
    """
    Find the candidate with the smallest absolute time difference to target.

    Candidates without usable coordinates or without a timestamp are ignored.
    Ties go to the earliest candidate in input order. No upper bound is
    applied to the difference; that is up to the caller.

    :param target: timezone aware instant to match
    :param candidates: positions in API order
    :return: best match, or None if no candidate qualifies
    """
    best = None
    dropped = 0
    for candidate in candidates:
        if not candidate.has_valid_coordinates() or candidate.timestamp is None:
            dropped += 1
            continue
        delta = abs((candidate.timestamp - target).total_seconds())
        if best is None or delta < best.delta_seconds:
            best = MatchResult(candidate, delta)
    if dropped:
        logger.debug("ignored %d candidates without coordinates or timestamp", dropped)
    if best is not None:
        logger.debug("closest candidate is %.0fs away", best.delta_seconds)
    return best
