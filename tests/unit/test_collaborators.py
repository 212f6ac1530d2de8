from __future__ import annotations

import pytest

from task_sheet_import.models.collaborator import Collaborator
from task_sheet_import.services.collaborators import initials, resolve_collaborator


def test_initials():
    assert initials("Jean Dupont") == "JD"
    assert initials("Arthur Le Goux") == "ALG"
    assert initials("Jean-Pierre Martin") == "JPM"
    assert initials("  ") == ""


def test_exact_email_case_insensitive(directory):
    found = resolve_collaborator("Marie.Curie@Example.com", directory)
    assert found is not None and found.person_id == "u-003"


def test_exact_display_name(directory):
    assert resolve_collaborator("arthur le goux", directory).person_id == "u-002"


def test_dotted_initial_resolves_by_token(directory):
    assert resolve_collaborator("J. Dupont", directory).display_name == "Jean Dupont"


def test_token_match_when_initials_are_ambiguous(directory):
    crowded = directory + [Collaborator("u-004", "Julie Durand", "julie.durand@example.com")]
    assert resolve_collaborator("J. Dupont", crowded).display_name == "Jean Dupont"


def test_unique_initials(directory):
    assert resolve_collaborator("JD", directory).display_name == "Jean Dupont"
    assert resolve_collaborator("alg", directory).display_name == "Arthur Le Goux"


def test_ambiguous_initials_do_not_resolve(directory):
    crowded = directory + [Collaborator("u-004", "Julie Durand", "julie.durand@example.com")]
    assert resolve_collaborator("JD", crowded) is None


def test_partial_first_name(directory):
    assert resolve_collaborator("Arthur", directory).person_id == "u-002"
    assert resolve_collaborator("Mme Curie", directory).person_id == "u-003"


def test_email_wins_over_name_substring():
    directory = [
        Collaborator("p-1", "marie.curie@example.com (ancienne adresse)", "old@example.com"),
        Collaborator("p-2", "Marie Curie", "marie.curie@example.com"),
    ]
    assert resolve_collaborator("marie.curie@example.com", directory).person_id == "p-2"


@pytest.mark.parametrize("text", ["", "   ", None, "Inconnu", "zz"])
def test_unresolved(text, directory):
    assert resolve_collaborator(text, directory) is None


def test_empty_directory():
    assert resolve_collaborator("Jean Dupont", []) is None
