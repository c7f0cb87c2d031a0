from __future__ import annotations

from models import CertificationDefinition, Employee
from services.filtering import (
    CERTIFICATION_CATEGORY_FIELD,
    CERTIFICATION_SEARCH_FIELDS,
    distinct_values,
    filter_items,
)


def _employees() -> list[Employee]:
    return [
        Employee(id="e1", first_name="Ada", last_name="Lovelace", email="ada@example.com", department="Engineering", position="Engineer"),
        Employee(id="e2", first_name="Grace", last_name="Hopper", email="grace@navy.mil", department="Engineering", position="Architect"),
        Employee(id="e3", first_name="Alan", last_name="Turing", email="alan@example.com", department="Research", position="Scientist"),
    ]


def test_empty_search_and_category_match_everything():
    employees = _employees()
    assert filter_items(employees, "", "") == employees
    assert filter_items(employees, None, None) == employees


def test_search_is_case_insensitive_across_fields():
    employees = _employees()
    assert [e.id for e in filter_items(employees, "LOVE")] == ["e1"]
    assert [e.id for e in filter_items(employees, "navy")] == ["e2"]
    assert [e.id for e in filter_items(employees, "scien")] == ["e3"]
    assert [e.id for e in filter_items(employees, "  al ")] == ["e3"]


def test_category_is_exact_match():
    employees = _employees()
    assert [e.id for e in filter_items(employees, "", "Engineering")] == ["e1", "e2"]
    assert filter_items(employees, "", "engineering") == []


def test_search_and_category_combine():
    employees = _employees()
    assert [e.id for e in filter_items(employees, "example", "Engineering")] == ["e1"]


def test_filter_does_not_mutate_source():
    employees = _employees()
    before = list(employees)
    filter_items(employees, "ada", "Research")
    assert employees == before


def test_certification_fields_and_distinct_values():
    certs = [
        CertificationDefinition(id="c1", name="Safety Basics", category="Safety"),
        CertificationDefinition(id="c2", name="Cloud", category="Technical", description="AWS fundamentals"),
        CertificationDefinition(id="c3", name="First Aid", category="Safety"),
    ]
    hits = filter_items(certs, "aws", "", fields=CERTIFICATION_SEARCH_FIELDS, category_field=CERTIFICATION_CATEGORY_FIELD)
    assert [c.id for c in hits] == ["c2"]
    assert distinct_values(certs, "category") == ["Safety", "Technical"]
    assert distinct_values(_employees(), "department") == ["Engineering", "Research"]
