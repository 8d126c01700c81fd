import sys
from pathlib import Path
PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import pytest

from backend.drugdir.models import DrugRecord


def report(report_id="1001", brand="ADVIL", generic="IBUPROFEN", manufacturer="Pfizer"):
    """A raw openFDA event report; pass None to leave a field out."""
    openfda = {}
    if brand is not None:
        openfda["brand_name"] = [brand]
    if generic is not None:
        openfda["generic_name"] = [generic]
    if manufacturer is not None:
        openfda["manufacturer_name"] = [manufacturer]
    item = {"patient": {"drug": [{"openfda": openfda}]}}
    if report_id is not None:
        item["safetyreportid"] = report_id
    return item


@pytest.fixture
def make_report():
    return report


@pytest.fixture
def advil():
    return DrugRecord(id="1001", brand_name="ADVIL", generic_name="IBUPROFEN", manufacturer_name="Pfizer")
