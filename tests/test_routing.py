import os
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATA_DIR", str(ROOT / "data"))

from printdesk.core.errors import RoutingUnresolved
from printdesk.models.customer import Customer
from printdesk.models.equipment import Equipment
from printdesk.services.routing import resolve_technician

# Register every mapped class so string relationships resolve
from printdesk.models import profile as profile_model  # noqa: F401
from printdesk.models import ticket as ticket_model  # noqa: F401


def _equipment(customer_id=None):
    return Equipment(id="eq-1", serial="SN-100", model="IM 550", customer_id=customer_id)


def test_resolves_to_customer_technician():
    customer = Customer(id="cust-1", name="City Hall", assigned_tech_id="tech-1")

    assert resolve_technician(_equipment("cust-1"), customer) == "tech-1"


def test_equipment_without_customer_is_unresolved():
    with pytest.raises(RoutingUnresolved) as info:
        resolve_technician(_equipment(), None)

    assert info.value.details["missing"] == "customer"
    assert "SN-100" in info.value.message


def test_customer_without_technician_is_unresolved():
    customer = Customer(id="cust-1", name="City Hall", assigned_tech_id=None)

    with pytest.raises(RoutingUnresolved) as info:
        resolve_technician(_equipment("cust-1"), customer)

    assert info.value.details["missing"] == "technician"
    assert "City Hall" in info.value.message


def test_missing_customer_record_is_unresolved():
    with pytest.raises(RoutingUnresolved) as info:
        resolve_technician(_equipment("cust-gone"), None)

    assert info.value.details["customer_id"] == "cust-gone"


def test_mismatched_customer_is_not_trusted():
    other = Customer(id="cust-2", name="Library", assigned_tech_id="tech-9")

    with pytest.raises(RoutingUnresolved):
        resolve_technician(_equipment("cust-1"), other)
