from __future__ import annotations

import logging
import re
import unicodedata
from collections.abc import Mapping, Sequence

from ..models.column_mapping import ColumnMapping
from ..models.fields import FieldKey

"""Column mapping engine.

Headers are normalized (lower-cased, whitespace/punctuation runs collapsed to
one underscore) and compared against a fixed synonym dictionary holding
English and French spellings. A header matches a field when it equals a
synonym or either one fully contains the other.

auto_map() always recomputes from scratch: calling it again is an explicit
reset of any manual override, never a merge.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "FIELD_SYNONYMS",
    "normalize_header",
    "header_matches",
    "merge_synonyms",
    "auto_map",
]

FIELD_SYNONYMS: dict[FieldKey, tuple[str, ...]] = {
    FieldKey.TITLE: (
        "title", "titre", "nom", "name", "tâche", "tache", "task", "intitulé", "intitule",
        "libellé", "libelle", "sujet", "subject",
    ),
    FieldKey.DESCRIPTION: (
        "description", "desc", "détails", "details", "notes", "note", "commentaire",
        "commentaires", "comment", "comments", "remarques", "remarque",
    ),
    FieldKey.STATUS: ("status", "statut", "état", "etat", "state", "avancement", "progression"),
    FieldKey.PRIORITY: ("priority", "priorité", "priorite", "urgence", "importance", "niveau"),
    FieldKey.PROGRESS: (
        "progress", "progression", "%", "pourcentage", "percent", "completion", "completé", "complete",
    ),
    FieldKey.START_DATE: (
        "start_date", "start", "début", "debut", "date_début", "date_debut", "date_de_début",
        "date_de_debut", "commence", "begin", "from", "démarrage", "demarrage",
    ),
    FieldKey.DUE_DATE: (
        "due_date", "end_date", "end", "fin", "date_fin", "date_de_fin", "échéance", "echeance",
        "deadline", "to", "due", "livraison", "delivery",
    ),
    FieldKey.ESTIMATED_HOURS: (
        "estimated_hours", "estimated", "heures_estimées", "heures_estimees", "estimation", "estimate",
        "temps_prévu", "temps_prevu", "heures_prévues", "heures_prevues",
    ),
    FieldKey.ACTUAL_HOURS: (
        "actual_hours", "actual", "heures_réelles", "heures_reelles", "heures_passées", "heures_passees",
        "temps_réel", "temps_reel", "spent", "worked", "temps_passé", "temps_passe",
    ),
    FieldKey.ASSIGNED_TO: (
        "assigned_to", "assigné", "assigne", "responsable", "owner", "user", "utilisateur", "membre",
        "member", "propriétaire", "proprietaire", "affecté", "affecte", "attribué", "attribue",
    ),
    FieldKey.TAGS: (
        "tags", "tag", "étiquettes", "etiquettes", "labels", "label", "catégories", "categories",
        "category", "type", "types",
    ),
    FieldKey.COLOR: ("color", "couleur", "colour", "hex", "code_couleur"),
}

# "%" is kept: it is a synonym on its own
_SEPARATORS = re.compile(r"[\s_\-./\\()\[\]:,;'\"]+")


def normalize_header(text: str) -> str:
    """Lower-case, trim and collapse whitespace/punctuation runs to "_"."""
    text = unicodedata.normalize("NFC", text)
    return _SEPARATORS.sub("_", text.strip().lower()).strip("_")


def header_matches(normalized_header: str, synonyms: Sequence[str]) -> bool:
    """True when the header equals a synonym or either fully contains the other."""
    if not normalized_header:
        return False
    for synonym in synonyms:
        if normalized_header == synonym or synonym in normalized_header or normalized_header in synonym:
            return True
    return False


def merge_synonyms(
    extra: Mapping[FieldKey, Sequence[str]] | None = None,
) -> dict[FieldKey, tuple[str, ...]]:
    """Built-in dictionary extended with configured synonyms (appended, normalized)."""
    merged = dict(FIELD_SYNONYMS)
    for fld, words in (extra or {}).items():
        added = tuple(w for w in (normalize_header(x) for x in words) if w and w not in merged[fld])
        merged[fld] = merged[fld] + added
    return merged


def auto_map(
    headers: Sequence[str],
    synonyms: Mapping[FieldKey, Sequence[str]] | None = None,
) -> ColumnMapping:
    """Propose a ColumnMapping for ``headers``.

    Headers are examined in order; each one is offered to the still unclaimed
    fields and claimed by the first field (FieldKey order) that lists it
    verbatim, else by the first field it matches by containment. The first
    matching column wins per field and no column serves two fields.
    """
    table = synonyms if synonyms is not None else FIELD_SYNONYMS
    mapping = ColumnMapping(len(headers))
    claimed: set[FieldKey] = set()
    for index, header in enumerate(headers):
        normalized = normalize_header(header)
        if not normalized:
            continue
        open_fields = [f for f in FieldKey if f not in claimed]
        chosen = next((f for f in open_fields if normalized in table.get(f, ())), None)
        if chosen is None:
            chosen = next((f for f in open_fields if header_matches(normalized, table.get(f, ()))), None)
        if chosen is not None:
            mapping.assign(chosen, index)
            claimed.add(chosen)
            logger.debug(f"auto-map column {index} {header!r} -> {chosen.value}")
    return mapping
