"""
Taxonomy Normalizer
===================

Turns the flat STIX bundle into the Tactic -> Technique -> Sub-technique tree
keyed by ATT&CK public IDs.

The bundle is a flat list of typed objects. Only two types matter here:

- ``x-mitre-tactic``  - a tactic, with ``x_mitre_shortname`` (e.g. 'defense-evasion')
- ``attack-pattern``  - a technique or sub-technique; ``kill_chain_phases``
                        entries of the 'mitre-attack' kill chain name the tactic
                        shortnames it belongs to

Linking rules:
1. An attack pattern flagged ``x_mitre_is_subtechnique`` whose ID contains the
   separator is attached to its parent (the ID prefix) and nowhere else.
2. Every other attack pattern is attached to each tactic whose shortname
   appears in its kill chain phases.
3. An unknown parent or tactic shortname is logged as a warning and only that
   one link is dropped; normalization never aborts because of it.

Siblings are sorted by name for stable presentation, and tactics are sorted by
name as well. The result is made of frozen dataclasses, so it is assembled
bottom-up: sub-techniques first, then their parents, then the tactics.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from ..config import KILL_CHAIN_NAME
from ..models.taxonomy_model import MitreData, Tactic, Technique
from ..models.technique_id import parent_technique_id

logger = logging.getLogger(__name__)

ATTACK_SOURCE_NAME = 'mitre-attack'


class TaxonomyNormalizer:
    """
    Builds a MitreData tree from a decoded STIX bundle.

    Attributes:
        include_deprecated: Keep objects marked ``revoked`` or ``x_mitre_deprecated``
        normalization_stats: Counters from the most recent ``normalize`` call
    """

    def __init__(self, include_deprecated: bool = False):
        self.include_deprecated = include_deprecated
        self.normalization_stats: Dict[str, int] = {}

    def normalize(self, document: Dict[str, Any]) -> MitreData:
        """
        Normalize a STIX bundle.

        Args:
            document: Decoded bundle with an ``objects`` list

        Returns:
            MitreData: Immutable tactic tree with lookup tables
        """
        self.normalization_stats = {
            'tactics': 0,
            'techniques': 0,
            'sub_techniques': 0,
            'skipped_objects': 0,
            'unresolved_parents': 0,
            'unresolved_tactics': 0
        }

        raw_tactics, raw_techniques = self._partition(document.get('objects', []))

        # Sub-technique links
        children: Dict[str, List[Technique]] = {}
        for public_id, raw in raw_techniques.items():
            parent_id = self._parent_of(public_id, raw)
            if parent_id is None:
                continue
            if parent_id not in raw_techniques:
                logger.warning(f"Parent technique {parent_id} not found for sub-technique {public_id}")
                self.normalization_stats['unresolved_parents'] += 1
                continue
            children.setdefault(parent_id, []).append(self._build_technique(public_id, raw, ()))

        techniques_by_id: Dict[str, Technique] = {}
        for sub_techniques in children.values():
            for sub_technique in sub_techniques:
                techniques_by_id[sub_technique.public_id] = sub_technique

        for public_id, raw in raw_techniques.items():
            if public_id in techniques_by_id:
                continue
            if self._parent_of(public_id, raw) is not None:
                # Orphaned sub-technique: still addressable by ID, but not linked anywhere
                techniques_by_id[public_id] = self._build_technique(public_id, raw, ())
                continue
            sub_techniques = tuple(sorted(children.get(public_id, []), key=lambda t: t.name))
            techniques_by_id[public_id] = self._build_technique(public_id, raw, sub_techniques)

        # Tactic links
        shortname_index = {raw.get('x_mitre_shortname'): public_id for public_id, raw in raw_tactics.items()}
        members: Dict[str, List[Technique]] = {public_id: [] for public_id in raw_tactics}

        for public_id, technique in techniques_by_id.items():
            if technique.is_sub_technique and parent_technique_id(public_id) is not None:
                continue
            for shortname in technique.tactic_shortnames:
                tactic_id = shortname_index.get(shortname)
                if tactic_id is None:
                    logger.warning(f"Tactic with shortname {shortname} not found for technique {public_id}")
                    self.normalization_stats['unresolved_tactics'] += 1
                    continue
                members[tactic_id].append(technique)

        tactics_by_id: Dict[str, Tactic] = {}
        for public_id, raw in raw_tactics.items():
            tactics_by_id[public_id] = Tactic(
                public_id=public_id,
                stix_id=raw.get('id', ''),
                name=raw.get('name', public_id),
                shortname=raw.get('x_mitre_shortname', ''),
                description=raw.get('description', '') or '',
                url=self._reference(raw).get('url'),
                techniques=tuple(sorted(members[public_id], key=lambda t: t.name))
            )

        tactics = tuple(sorted(tactics_by_id.values(), key=lambda t: t.name))

        self.normalization_stats['tactics'] = len(tactics_by_id)
        self.normalization_stats['sub_techniques'] = sum(
            1 for technique in techniques_by_id.values() if technique.is_sub_technique
        )
        self.normalization_stats['techniques'] = len(techniques_by_id) - self.normalization_stats['sub_techniques']
        logger.info(f"MITRE data processed: {len(tactics)} tactics, "
                    f"{len(techniques_by_id)} techniques/sub-techniques")

        return MitreData(
            tactics=tactics,
            techniques_by_id=techniques_by_id,
            tactics_by_id=tactics_by_id,
            spec_version=document.get('spec_version')
        )

    def _partition(self, objects: List[Any]) -> Tuple[Dict[str, Dict[str, Any]], Dict[str, Dict[str, Any]]]:
        """Split bundle objects into tactics and attack patterns keyed by public ID."""
        tactics: Dict[str, Dict[str, Any]] = {}
        techniques: Dict[str, Dict[str, Any]] = {}

        for obj in objects:
            if not isinstance(obj, dict) or obj.get('type') not in ('x-mitre-tactic', 'attack-pattern'):
                continue

            if not self.include_deprecated and (obj.get('revoked') or obj.get('x_mitre_deprecated')):
                self.normalization_stats['skipped_objects'] += 1
                continue

            public_id = self._reference(obj).get('external_id')
            if not public_id:
                self.normalization_stats['skipped_objects'] += 1
                continue

            target = tactics if obj['type'] == 'x-mitre-tactic' else techniques
            if public_id in target:
                logger.debug(f"Ignoring second STIX object for {public_id}")
                continue
            target[public_id] = obj

        return tactics, techniques

    @staticmethod
    def _reference(obj: Dict[str, Any]) -> Dict[str, Any]:
        """The ATT&CK external reference, falling back to the first reference."""
        references = [ref for ref in obj.get('external_references') or [] if isinstance(ref, dict)]
        for reference in references:
            if reference.get('source_name') == ATTACK_SOURCE_NAME:
                return reference
        return references[0] if references else {}

    @staticmethod
    def _parent_of(public_id: str, raw: Dict[str, Any]) -> Optional[str]:
        if not raw.get('x_mitre_is_subtechnique'):
            return None
        return parent_technique_id(public_id)

    def _build_technique(self, public_id: str, raw: Dict[str, Any],
                         sub_techniques: Tuple[Technique, ...]) -> Technique:
        shortnames = tuple(
            phase.get('phase_name')
            for phase in raw.get('kill_chain_phases') or []
            if isinstance(phase, dict) and phase.get('kill_chain_name') == KILL_CHAIN_NAME and phase.get('phase_name')
        )
        return Technique(
            public_id=public_id,
            stix_id=raw.get('id', ''),
            name=raw.get('name', public_id),
            description=raw.get('description', '') or '',
            url=self._reference(raw).get('url'),
            tactic_shortnames=shortnames,
            is_sub_technique=bool(raw.get('x_mitre_is_subtechnique')),
            sub_techniques=sub_techniques
        )
