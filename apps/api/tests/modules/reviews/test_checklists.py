"""
Unit tests for the per-permit-type checklists.
"""

from app.modules.applications.models import PermitType
from app.modules.reviews.checklists import (
    OTHER_DOCUMENTS,
    PROJECT_COORDINATES,
    acceptance_checklist,
)


class TestAcceptanceChecklist:
    def test_isag_has_eleven_items(self):
        assert len(acceptance_checklist(PermitType.ISAG)) == 11

    def test_csag_has_ten_items(self):
        assert len(acceptance_checklist(PermitType.CSAG)) == 10

    def test_coordinates_come_first(self):
        for permit_type in PermitType:
            assert acceptance_checklist(permit_type)[0].item_type == PROJECT_COORDINATES

    def test_item_types_unique(self):
        for permit_type in PermitType:
            types = [item.item_type for item in acceptance_checklist(permit_type)]
            assert len(types) == len(set(types))

    def test_csag_has_no_epep(self):
        types = {item.item_type for item in acceptance_checklist(PermitType.CSAG)}
        assert "EPEP" not in types


def test_other_documents():
    assert [d.item_type for d in OTHER_DOCUMENTS] == [
        "ECC",
        "LGU_ENDORSEMENT",
        "COMMUNITY_CONSENT",
        "ANCESTRAL_DOMAIN_CLEARANCE",
        "BUSINESS_PERMIT",
    ]
