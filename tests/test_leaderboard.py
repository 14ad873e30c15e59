import pytest

from services import leaderboard_service
from use_cases import report_flow


@pytest.fixture
def populated(make_user):
    ada = make_user("ada@pci.test", first_name="Ada", last_name="Lovelace")
    bob = make_user("bob@pci.test", first_name="Bob", last_name="Builder")
    make_user("idle@pci.test", first_name="Idle", last_name="User")
    green = make_user("green@pci.test", role="agent", is_approved=True, company_name="Green Haulers")
    blue = make_user("blue@pci.test", role="agent", is_approved=True, company_name="Blue Bins")
    make_user("late@pci.test", role="agent", company_name="Late Co")

    for owner, waste_type, weight, agent, decision in [
        (ada, "PET bottles", 4, green, "approved"),
        (ada, "Plastic bags", 2.5, green, "approved"),
        (bob, "PET bottles", 10, blue, "approved"),
        (bob, "Mixed plastics", 7, blue, "rejected"),
        (ada, "Packaging film", 1, None, None),
    ]:
        report = report_flow.submit_report(owner, waste_type, weight)
        if decision:
            report_flow.decide_report(report.id, decision, agent)
    return ada, bob, green, blue


def test_top_users_ranks_by_points(populated):
    df = leaderboard_service.top_users()

    assert list(df["name"]) == ["Bob Builder", "Ada Lovelace"]
    assert list(df["points"]) == [10, 7]
    assert list(df["rank"]) == [1, 2]


def test_top_users_limit(populated):
    assert len(leaderboard_service.top_users(limit=1)) == 1


def test_top_agents_ranks_by_approved_weight(populated):
    df = leaderboard_service.top_agents()

    assert list(df["name"]) == ["Blue Bins", "Green Haulers"]
    assert list(df["kg_collected"]) == [10.0, 6.5]
    assert list(df["reports"]) == [1, 2]


def test_top_agents_empty(test_db):
    df = leaderboard_service.top_agents()
    assert df.empty
    assert "kg_collected" in df.columns


def test_platform_stats(populated):
    stats = leaderboard_service.platform_stats()

    assert stats["users"] == 3
    assert stats["approved_agents"] == 2
    assert stats["pending_agents"] == 1
    assert stats["reports_pending"] == 1
    assert stats["reports_approved"] == 3
    assert stats["reports_rejected"] == 1
    assert stats["kg_collected"] == 16.5
    assert stats["points_awarded"] == 17


def test_weight_by_type_only_counts_approved(populated):
    ada, _, _, _ = populated
    df = leaderboard_service.weight_by_type(report_flow.list_reports_for_user(ada.id))

    assert list(df["waste_type"]) == ["PET bottles", "Plastic bags"]
    assert list(df["weight"]) == [4.0, 2.5]


def test_weight_by_type_empty():
    df = leaderboard_service.weight_by_type([])
    assert df.empty
    assert list(df.columns) == ["waste_type", "weight"]
