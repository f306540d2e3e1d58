"""Unit tests for STIX bundle normalization."""

import logging

import pytest

from mitre_board.core.taxonomy_normalizer import TaxonomyNormalizer


class TestTaxonomyNormalizer:

    def test_tactics_sorted_by_name(self, mitre_data):
        assert [tactic.name for tactic in mitre_data.tactics] == ["Credential Access", "Defense Evasion"]
        assert set(mitre_data.tactics_by_id) == {"TA0005", "TA0006"}

    def test_techniques_linked_by_shortname(self, mitre_data):
        defense_evasion = mitre_data.tactics_by_id["TA0005"]

        assert [t.public_id for t in defense_evasion.techniques] == ["T1027", "T1055"]
        assert mitre_data.get_technique("T1055").tactic_shortnames == ("defense-evasion", "privilege-escalation")

    def test_sub_techniques_nested_under_parent_sorted_by_name(self, mitre_data):
        credential_access = mitre_data.tactics_by_id["TA0006"]
        dumping = credential_access.techniques[0]

        assert [t.public_id for t in credential_access.techniques] == ["T1003"]
        assert [sub.name for sub in dumping.sub_techniques] == ["LSASS Memory", "Security Account Manager"]
        assert all(sub.is_sub_technique for sub in dumping.sub_techniques)

    def test_lookup_contains_every_technique(self, mitre_data):
        assert set(mitre_data.techniques_by_id) == {
            "T1003", "T1003.001", "T1003.002", "T1055", "T1055.001", "T1027", "T9999.001"
        }
        assert mitre_data.get_technique("T1003").sub_techniques[0] is mitre_data.get_technique("T1003.001")

    def test_unresolved_links_warn(self, stix_bundle, caplog):
        with caplog.at_level(logging.WARNING):
            data = TaxonomyNormalizer().normalize(stix_bundle)

        assert "Parent technique T9999 not found for sub-technique T9999.001" in caplog.text
        assert "Tactic with shortname privilege-escalation not found for technique T1055" in caplog.text
        for tactic in data.tactics:
            assert "T9999.001" not in [t.public_id for t in tactic.techniques]

    def test_revoked_objects_skipped_by_default(self, stix_bundle):
        assert TaxonomyNormalizer().normalize(stix_bundle).get_technique("T1000") is None

        data = TaxonomyNormalizer(include_deprecated=True).normalize(stix_bundle)
        assert data.get_technique("T1000") is not None

    def test_statistics(self, stix_bundle):
        normalizer = TaxonomyNormalizer()
        normalizer.normalize(stix_bundle)

        stats = normalizer.normalization_stats
        assert stats["tactics"] == 2
        assert stats["techniques"] == 3
        assert stats["sub_techniques"] == 4
        assert stats["unresolved_parents"] == 1
        assert stats["unresolved_tactics"] == 1
        assert stats["skipped_objects"] == 1

    def test_serialized_document(self, mitre_data):
        document = mitre_data.to_dict()

        assert set(document) == {"tactics", "techniquesById", "tacticsById"}
        tactic = document["tactics"][0]
        assert tactic["x_mitre_shortname"] == "credential-access"
        assert tactic["external_references"][0]["external_id"] == "TA0006"
        technique = tactic["techniques"][0]
        assert technique["external_references"][0]["external_id"] == "T1003"
        assert [sub["publicId"] for sub in technique["subTechniques"]] == ["T1003.001", "T1003.002"]
        assert document["techniquesById"]["T1003.001"]["x_mitre_is_subtechnique"] is True

    def test_empty_bundle(self):
        data = TaxonomyNormalizer().normalize({"objects": []})

        assert data.tactics == ()
        assert len(data.techniques_by_id) == 0

    def test_prefers_attack_reference(self):
        bundle = {"objects": [{
            "type": "x-mitre-tactic",
            "id": "x-mitre-tactic--1",
            "name": "Impact",
            "x_mitre_shortname": "impact",
            "external_references": [
                {"source_name": "capec", "external_id": "CAPEC-1"},
                {"source_name": "mitre-attack", "external_id": "TA0040"},
            ],
        }]}

        data = TaxonomyNormalizer().normalize(bundle)

        assert list(data.tactics_by_id) == ["TA0040"]

    def test_result_is_read_only(self, mitre_data):
        with pytest.raises(TypeError):
            mitre_data.techniques_by_id["T0000"] = None
