import logging
from typing import Any, Iterable, List

from .errors import MalformedRecord
from .models import DrugRecord, UNKNOWN

logger = logging.getLogger("drug_directory.normalize")

OPENFDA_FIELDS = ("brand_name", "generic_name", "manufacturer_name")


def _first(value: Any) -> Any:
    if isinstance(value, list) and value:
        return value[0]
    return None


def _openfda(raw: dict) -> dict:
    # patient.drug[0].openfda, or {} when any step is missing
    patient = raw.get("patient")
    if not isinstance(patient, dict):
        return {}
    drug = _first(patient.get("drug"))
    if not isinstance(drug, dict):
        return {}
    openfda = drug.get("openfda")
    return openfda if isinstance(openfda, dict) else {}


def _field(openfda: dict, name: str) -> str:
    value = _first(openfda.get(name))
    if isinstance(value, str) and value.strip():
        return value
    return UNKNOWN


def normalize(raw: Any) -> DrugRecord:
    """
    Turn one openFDA adverse-event report into a DrugRecord.
    Missing name fields become "Unknown"; a missing safetyreportid raises MalformedRecord.
    """
    if not isinstance(raw, dict):
        raise MalformedRecord(f"report is not an object: {type(raw).__name__}")
    report_id = raw.get("safetyreportid")
    if report_id is None or str(report_id).strip() == "":
        raise MalformedRecord("report has no safetyreportid")

    openfda = _openfda(raw)
    return DrugRecord(id=str(report_id), **{name: _field(openfda, name) for name in OPENFDA_FIELDS})


def normalize_all(items: Iterable[Any]) -> List[DrugRecord]:
    """Normalize a batch, dropping reports that can't be identified. Order is kept."""
    out: List[DrugRecord] = []
    dropped = 0
    for item in items:
        try:
            out.append(normalize(item))
        except MalformedRecord as e:
            dropped += 1
            logger.debug(f"dropping report: {e}")
    if dropped:
        logger.info(f"dropped {dropped} malformed report(s) of {dropped + len(out)}")
    return out
