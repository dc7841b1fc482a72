import pytest

from powerplatform_assessment.aggregation import FindingCollection
from powerplatform_assessment.analyzers import Area, Finding, Risk


def make_finding(area, issue="Issue", risk=Risk.MEDIUM):
    return Finding(
        area=area,
        issue=issue,
        risk=risk,
        impact="impact",
        mitigation="mitigation",
        iso_control="A.8.12",
        cis_control="CIS 3.3",
        evidence=f"{issue} evidence",
    )


def test_insertion_order_is_preserved_and_duplicates_kept():
    first = make_finding(Area.SECURITY_MODEL, "Default environment in use")
    second = make_finding(Area.FLOW_OPTIMIZATION, "Flow uses a custom connector")

    collection = FindingCollection()
    collection.add_all([first, second])
    collection.add_all([first])

    assert list(collection) == [first, second, first]
    assert len(collection) == 3


def test_group_by_area_sorted_by_count_descending():
    collection = FindingCollection([
        make_finding(Area.SECURITY_MODEL),
        make_finding(Area.DASHBOARD_ANALYTICS),
        make_finding(Area.DASHBOARD_ANALYTICS),
        make_finding(Area.APPLICATION_PERFORMANCE),
        make_finding(Area.DASHBOARD_ANALYTICS),
    ])

    summary = collection.group_by_area()

    assert list(summary.items()) == [
        (Area.DASHBOARD_ANALYTICS, 3),
        (Area.SECURITY_MODEL, 1),
        (Area.APPLICATION_PERFORMANCE, 1),
    ]
    assert sum(summary.values()) == len(collection)


def test_group_by_area_of_empty_collection():
    assert FindingCollection().group_by_area() == {}


def test_frozen_collection_rejects_new_findings():
    collection = FindingCollection([make_finding(Area.SECURITY_MODEL)])

    snapshot = collection.freeze()

    assert collection.frozen
    assert snapshot == tuple(collection)
    with pytest.raises(RuntimeError):
        collection.add_all([make_finding(Area.DATA_MODEL)])


def test_count_by_risk():
    collection = FindingCollection([
        make_finding(Area.SECURITY_MODEL, risk=Risk.CRITICAL),
        make_finding(Area.SECURITY_MODEL, risk=Risk.HIGH),
        make_finding(Area.DATA_MODEL, risk=Risk.HIGH),
    ])

    assert collection.count_by_risk() == {"Critical": 1, "High": 2}


def test_count_by_risk_lists_most_severe_first():
    collection = FindingCollection([
        make_finding(Area.DATA_MODEL, risk=Risk.LOW),
        make_finding(Area.SECURITY_MODEL, risk=Risk.CRITICAL),
    ])

    assert list(collection.count_by_risk()) == ["Critical", "Low"]


def test_finding_to_dict_uses_display_values():
    data = make_finding(Area.DATA_MODEL, "Excessive custom tables in Dataverse").to_dict()

    assert data["area"] == "Data Model & Architecture"
    assert data["risk"] == "Medium"
    assert data["evidence"] == "Excessive custom tables in Dataverse evidence"
