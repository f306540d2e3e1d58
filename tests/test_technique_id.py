"""Unit tests for the sub-technique identifier convention."""

import pytest

from mitre_board.models.technique_id import is_sub_technique, parent_technique_id


class TestParentTechniqueId:

    @pytest.mark.parametrize("identifier,parent", [
        ("T1055.001", "T1055"),
        ("T1003.002", "T1003"),
        ("T1.2.3", "T1"),
    ])
    def test_sub_technique_has_parent(self, identifier, parent):
        assert parent_technique_id(identifier) == parent

    @pytest.mark.parametrize("identifier", ["T1055", "TA0005", "", ".001"])
    def test_no_parent(self, identifier):
        assert parent_technique_id(identifier) is None

    def test_is_sub_technique(self):
        assert is_sub_technique("T1055.001")
        assert not is_sub_technique("T1055")
        assert not is_sub_technique("TA0005")
