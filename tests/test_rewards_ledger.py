import threading

import pytest

from infrastructure.repositories import get_audit_repo, get_profile_repo, get_rewards_repo
from use_cases import rewards_ledger
from use_cases.errors import AuthorizationFailure, NotFound, ValidationFailure


@pytest.fixture
def admin(make_user):
    return make_user("admin@pci.test", role="admin")


def _user_with_points(make_user, points, email="user@pci.test"):
    user = make_user(email)
    repo = get_profile_repo()
    repo.increment_points(user.id, points, "2026-01-01T00:00:00+00:00")
    return repo.get_profile(user.id)


def _reward(admin, name="Reusable bottle", points=50, quantity=3):
    return rewards_ledger.create_reward(admin, name, points, quantity, description="Steel, 750 ml")


def test_catalog_sorted_by_cost(admin):
    _reward(admin, "Tote bag", 80)
    _reward(admin, "Sticker pack", 10)
    _reward(admin, "Bottle", 50)

    assert [r.points_required for r in rewards_ledger.list_available()] == [10, 50, 80]


def test_can_redeem_compares_balance():
    from use_cases.domain_models import Reward
    from use_cases.session_models import Profile
    reward = Reward(id="r", name="Bottle", points_required=50, available_quantity=1)

    assert rewards_ledger.can_redeem(Profile(id="u", role="user", points=50), reward)
    assert not rewards_ledger.can_redeem(Profile(id="u", role="user", points=49), reward)


def test_redeem_debits_points_and_stock(admin, make_user):
    user = _user_with_points(make_user, 120)
    reward = _reward(admin, points=50, quantity=3)

    redemption = rewards_ledger.redeem(user, reward.id)

    assert redemption.points_spent == 50
    assert redemption.reward_name == "Reusable bottle"
    assert get_profile_repo().get_profile(user.id).points == 70
    assert get_rewards_repo().get_reward(reward.id).available_quantity == 2
    history = rewards_ledger.list_redemptions(user.id)
    assert [(r.reward_id, r.points_spent) for r in history] == [(reward.id, 50)]
    assert len(get_audit_repo().get_logs(action_filter="REWARD_REDEEM")) == 1


def test_redeem_insufficient_points_leaves_no_trace(admin, make_user):
    user = _user_with_points(make_user, 30)
    reward = _reward(admin, points=50)

    with pytest.raises(ValidationFailure):
        rewards_ledger.redeem(user, reward.id)

    assert get_profile_repo().get_profile(user.id).points == 30
    assert get_rewards_repo().get_reward(reward.id).available_quantity == 3
    assert rewards_ledger.list_redemptions(user.id) == []


def test_redeem_out_of_stock(admin, make_user):
    user = _user_with_points(make_user, 100)
    reward = _reward(admin, points=10, quantity=0)

    with pytest.raises(ValidationFailure):
        rewards_ledger.redeem(user, reward.id)
    assert get_profile_repo().get_profile(user.id).points == 100


def test_redeem_with_stale_profile_is_rejected(admin, make_user):
    user = _user_with_points(make_user, 60)
    reward = _reward(admin, points=50)
    rewards_ledger.redeem(user, reward.id)

    # 'user' still says 60 points; the stored balance is 10.
    with pytest.raises(ValidationFailure):
        rewards_ledger.redeem(user, reward.id)
    assert get_profile_repo().get_profile(user.id).points == 10
    assert len(rewards_ledger.list_redemptions(user.id)) == 1


def test_concurrent_redemptions_never_oversell(admin, make_user):
    reward = _reward(admin, points=10, quantity=2)
    users = [_user_with_points(make_user, 10, email=f"user{i}@pci.test") for i in range(5)]
    outcomes = []

    def attempt(profile):
        try:
            rewards_ledger.redeem(profile, reward.id)
            outcomes.append("ok")
        except ValidationFailure:
            outcomes.append("refused")

    threads = [threading.Thread(target=attempt, args=(u,)) for u in users]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert outcomes.count("ok") == 2
    assert get_rewards_repo().get_reward(reward.id).available_quantity == 0
    assert len(get_rewards_repo().list_redemptions()) == 2


def test_redeem_unknown_reward(make_user):
    user = _user_with_points(make_user, 10)
    with pytest.raises(NotFound):
        rewards_ledger.redeem(user, "missing")


def test_only_users_redeem(admin, make_user):
    agent = make_user("agent@pci.test", role="agent", is_approved=True)
    reward = _reward(admin, points=1)
    for profile in (agent, admin):
        with pytest.raises(AuthorizationFailure):
            rewards_ledger.redeem(profile, reward.id)


@pytest.mark.parametrize(
    "name,points,quantity",
    [("", 10, 1), ("Bottle", 0, 1), ("Bottle", -5, 1), ("Bottle", "ten", 1), ("Bottle", 10, -1)],
)
def test_create_reward_validation(admin, name, points, quantity):
    with pytest.raises(ValidationFailure):
        rewards_ledger.create_reward(admin, name, points, quantity)


def test_catalog_management_requires_admin(make_user):
    user = make_user("user@pci.test")
    with pytest.raises(AuthorizationFailure):
        rewards_ledger.create_reward(user, "Bottle", 10, 1)
    with pytest.raises(AuthorizationFailure):
        rewards_ledger.list_rewards(user)


def test_update_and_search_rewards(admin):
    reward = _reward(admin)
    updated = rewards_ledger.update_reward(admin, reward.id, "Insulated bottle", 75, 5, category="Drinkware")

    assert updated.name == "Insulated bottle"
    assert updated.points_required == 75
    assert updated.available_quantity == 5
    assert [r.id for r in rewards_ledger.list_rewards(admin, search="drink")] == [reward.id]
    assert rewards_ledger.list_rewards(admin, search="tote") == []

    with pytest.raises(NotFound):
        rewards_ledger.update_reward(admin, "missing", "X", 1, 1)


def test_delete_reward(admin):
    reward = _reward(admin)
    rewards_ledger.delete_reward(admin, reward.id)
    assert get_rewards_repo().get_reward(reward.id) is None
    with pytest.raises(NotFound):
        rewards_ledger.delete_reward(admin, reward.id)


def test_delete_redeemed_reward_retires_it(admin, make_user):
    user = _user_with_points(make_user, 100)
    reward = _reward(admin, points=10, quantity=5)
    rewards_ledger.redeem(user, reward.id)

    rewards_ledger.delete_reward(admin, reward.id)

    retired = get_rewards_repo().get_reward(reward.id)
    assert retired.available_quantity == 0
    assert rewards_ledger.list_redemptions(user.id)[0].reward_name == "Reusable bottle"
