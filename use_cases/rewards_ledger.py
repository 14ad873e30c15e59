"""Reward catalog, redemption eligibility and the points ledger."""

import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from infrastructure.repositories import get_audit_repo, get_rewards_repo
from infrastructure.repositories.sqlite_audit_repository import AuditAction
from use_cases import rbac_policy
from use_cases.domain_models import Redemption, Reward
from use_cases.errors import AuthorizationFailure, NotFound, ValidationFailure
from use_cases.session_models import Profile

log = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def list_available() -> List[Reward]:
    """Catalog sorted by points required, cheapest first."""
    return get_rewards_repo().list_rewards(order_by="points_required")


def can_redeem(profile: Profile, reward: Reward) -> bool:
    return (profile.points or 0) >= reward.points_required


def redeem(profile: Profile, reward_id) -> Redemption:
    if not rbac_policy.enforce(profile, rbac_policy.REDEEM_REWARD):
        raise AuthorizationFailure("Only users can redeem rewards.")
    repo = get_rewards_repo()
    reward = repo.get_reward(reward_id)
    if reward is None:
        raise NotFound(f"Reward {reward_id} not found.")
    if not can_redeem(profile, reward):
        raise ValidationFailure(
            f"You need {reward.points_required - profile.points} more points for {reward.name}."
        )
    if not reward.in_stock:
        raise ValidationFailure(f"{reward.name} is out of stock.")

    redemption_id = str(uuid.uuid4())
    now_iso = _now_iso()
    success, err = repo.redeem(redemption_id, profile.id, reward.id, reward.points_required, now_iso)
    if not success:
        # Stored balance or stock moved since the profile was read.
        if err == "out_of_stock":
            raise ValidationFailure(f"{reward.name} is out of stock.")
        raise ValidationFailure(f"Not enough points to redeem {reward.name}.")

    get_audit_repo().log_action(
        AuditAction.REWARD_REDEEM,
        target_type="reward",
        target_id=reward.id,
        actor_user_id=profile.id,
        actor_role=profile.role,
        metadata={"cost": reward.points_required},
    )
    log.info(f"User {profile.id} redeemed {reward.id} for {reward.points_required} pts")
    return Redemption(
        id=redemption_id,
        user_id=profile.id,
        reward_id=reward.id,
        points_spent=reward.points_required,
        redeemed_at=now_iso,
        reward_name=reward.name,
    )


def list_redemptions(user_id) -> List[Redemption]:
    return get_rewards_repo().list_redemptions(user_id)


# --- admin catalog management ---

def _validate_reward_fields(name, points_required, available_quantity) -> dict:
    name = (name or "").strip()
    if not name:
        raise ValidationFailure("Reward name is required.")
    try:
        points = int(points_required)
        quantity = int(available_quantity)
    except (TypeError, ValueError):
        raise ValidationFailure("Points and quantity must be whole numbers.")
    if points <= 0:
        raise ValidationFailure("Points required must be greater than zero.")
    if quantity < 0:
        raise ValidationFailure("Quantity cannot be negative.")
    return {"name": name, "points_required": points, "available_quantity": quantity}


def _require_admin(acting_profile: Profile):
    if not rbac_policy.enforce(acting_profile, rbac_policy.MANAGE_REWARDS):
        raise AuthorizationFailure("Only administrators can manage the reward catalog.")


def list_rewards(acting_profile: Profile, search: Optional[str] = None) -> List[Reward]:
    _require_admin(acting_profile)
    rewards = get_rewards_repo().list_rewards(order_by="created_at")
    query = (search or "").strip().lower()
    if not query:
        return rewards
    return [
        r for r in rewards
        if query in r.name.lower() or query in (r.category or "").lower() or query in (r.description or "").lower()
    ]


def create_reward(acting_profile: Profile, name, points_required, available_quantity=0,
                  description=None, category=None, image_url=None) -> Reward:
    _require_admin(acting_profile)
    fields = _validate_reward_fields(name, points_required, available_quantity)
    reward_id = str(uuid.uuid4())
    repo = get_rewards_repo()
    repo.insert_reward(reward_id, fields["name"], (description or "").strip() or None,
                       (category or "").strip() or None, fields["points_required"],
                       fields["available_quantity"], (image_url or "").strip() or None, _now_iso())
    get_audit_repo().log_action(AuditAction.REWARD_CREATE, target_type="reward", target_id=reward_id,
                                actor_user_id=acting_profile.id, actor_role=acting_profile.role,
                                metadata={"cost": fields["points_required"]})
    return repo.get_reward(reward_id)


def update_reward(acting_profile: Profile, reward_id, name, points_required, available_quantity,
                  description=None, category=None, image_url=None) -> Reward:
    _require_admin(acting_profile)
    fields = _validate_reward_fields(name, points_required, available_quantity)
    fields.update({
        "description": (description or "").strip() or None,
        "category": (category or "").strip() or None,
        "image_url": (image_url or "").strip() or None,
    })
    repo = get_rewards_repo()
    if repo.update_reward(reward_id, fields, _now_iso()) != 1:
        raise NotFound(f"Reward {reward_id} not found.")
    get_audit_repo().log_action(AuditAction.REWARD_UPDATE, target_type="reward", target_id=reward_id,
                                actor_user_id=acting_profile.id, actor_role=acting_profile.role,
                                metadata={"fields": sorted(fields)})
    return repo.get_reward(reward_id)


def delete_reward(acting_profile: Profile, reward_id) -> None:
    _require_admin(acting_profile)
    if get_rewards_repo().delete_reward(reward_id) != 1:
        raise NotFound(f"Reward {reward_id} not found.")
    get_audit_repo().log_action(AuditAction.REWARD_DELETE, target_type="reward", target_id=reward_id,
                                actor_user_id=acting_profile.id, actor_role=acting_profile.role)
