"""
Collapsing of duplicate fields, within one card side and across sides.
"""
import logging
from dataclasses import replace
from typing import Dict, List

from field_taxonomy import create_dynamic_label, normalize_key
from scan_fields import SIDES, MergedScanResult, ScanField, ScanResult

logger = logging.getLogger(__name__)


def _candidate_order(field: ScanField):
    return (field.is_dynamic, -field.confidence)


def _add_alternative(alternatives: List[Dict], seen: set, value, confidence, source, side):
    key = (value, source)
    if key in seen:
        return
    seen.add(key)
    alternatives.append({"value": value, "confidence": confidence, "source": source, "side": side})


def deduplicate_fields(fields: List[ScanField]) -> List[ScanField]:
    """
    Keep one field per label (case-insensitive).

    Non-dynamic candidates win over dynamic ones, then higher confidence wins;
    ties keep the earlier candidate. Every other candidate is kept as an
    alternative value unless it carries the same value from the same source
    as the chosen field. A same value found by a different source (AI on one
    side, QR on the other) is still recorded, so its provenance survives.
    """
    groups: Dict[str, List[ScanField]] = {}
    for field in fields:
        groups.setdefault(normalize_key(field.label), []).append(field)

    deduplicated = []
    for group_key, candidates in groups.items():
        ordered = sorted(candidates, key=_candidate_order)
        best = ordered[0]

        seen = {(best.value, best.source)}
        alternatives: List[Dict] = []
        for alt in best.alternative_values:
            _add_alternative(alternatives, seen, alt["value"], alt["confidence"], alt["source"], alt.get("side"))

        sides = set(best.sides or [best.side])
        for other in ordered[1:]:
            sides.update(other.sides or [other.side])
            _add_alternative(alternatives, seen, other.value, other.confidence, other.source, other.side)
            for alt in other.alternative_values:
                _add_alternative(alternatives, seen, alt["value"], alt["confidence"], alt["source"], alt.get("side"))

        deduplicated.append(replace(
            best,
            label=create_dynamic_label(group_key),
            alternative_values=alternatives,
            sides=[side for side in SIDES if side in sides],
            validation_errors=list(best.validation_errors),
        ))

    if len(deduplicated) < len(fields):
        logger.debug(f"Deduplicated {len(fields)} fields down to {len(deduplicated)}")
    return deduplicated


def merge_side_results(results: List[ScanResult]) -> MergedScanResult:
    """Union of the successful sides, deduplicated once more across sides"""
    all_fields: List[ScanField] = []
    overall_success = False
    has_qr_code = False
    dynamic_fields_count = 0

    for result in results:
        if not result.success:
            continue
        overall_success = True
        all_fields.extend(result.parsed_fields)
        has_qr_code = has_qr_code or result.has_qr_code
        dynamic_fields_count += result.dynamic_fields_count

    return MergedScanResult(
        success=overall_success,
        parsed_fields=deduplicate_fields(all_fields),
        has_qr_code=has_qr_code,
        dynamic_fields_count=dynamic_fields_count,
    )


def merge_fallback_results(results: List[ScanResult]) -> MergedScanResult:
    """Merged view of failed sides: their placeholder fields and Notes, deduplicated"""
    return MergedScanResult(
        success=False,
        parsed_fields=deduplicate_fields([f for result in results for f in result.parsed_fields]),
        has_qr_code=any(result.has_qr_code for result in results),
        dynamic_fields_count=sum(result.dynamic_fields_count for result in results),
    )
