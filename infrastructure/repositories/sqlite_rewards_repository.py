from typing import Optional, List

from infrastructure.repositories.sqlite_base import SQLiteRepository
from use_cases.domain_models import Reward, Redemption

REWARD_COLUMNS = "id, name, description, category, points_required, available_quantity, image_url, created_at, updated_at"
EDITABLE_REWARD_FIELDS = {"name", "description", "category", "points_required", "available_quantity", "image_url"}


def row_to_reward(row) -> Reward:
    return Reward(
        id=row["id"],
        name=row["name"],
        description=row["description"],
        category=row["category"],
        points_required=row["points_required"],
        available_quantity=row["available_quantity"] or 0,
        image_url=row["image_url"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class SQLiteRewardsRepository(SQLiteRepository):

    def insert_reward(self, reward_id, name, description, category, points_required,
                      available_quantity, image_url, created_at):
        with self._session() as conn:
            conn.execute(f"""
                INSERT INTO rewards ({REWARD_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (reward_id, name, description, category, points_required,
                  available_quantity, image_url, created_at, created_at))

    def get_reward(self, reward_id: str) -> Optional[Reward]:
        with self._session() as conn:
            row = conn.execute(f"SELECT {REWARD_COLUMNS} FROM rewards WHERE id = ?", (reward_id,)).fetchone()
            return row_to_reward(row) if row else None

    def list_rewards(self, order_by: str = "points_required") -> List[Reward]:
        order = {
            "points_required": "points_required ASC, name ASC",
            "created_at": "created_at DESC",
        }[order_by]
        with self._session() as conn:
            rows = conn.execute(f"SELECT {REWARD_COLUMNS} FROM rewards ORDER BY {order}").fetchall()
            return [row_to_reward(r) for r in rows]

    def update_reward(self, reward_id: str, fields: dict, updated_at: str) -> int:
        unknown = set(fields) - EDITABLE_REWARD_FIELDS
        if unknown:
            raise ValueError(f"Fields are not editable: {sorted(unknown)}")
        if not fields:
            return 0
        assignments = ", ".join(f"{name} = ?" for name in fields)
        params = list(fields.values()) + [updated_at, reward_id]
        with self._session() as conn:
            return conn.execute(f"UPDATE rewards SET {assignments}, updated_at = ? WHERE id = ?", tuple(params)).rowcount

    def delete_reward(self, reward_id: str) -> int:
        with self._session() as conn:
            redeemed = conn.execute("SELECT 1 FROM user_rewards WHERE reward_id = ? LIMIT 1", (reward_id,)).fetchone()
            if redeemed:
                # Redemptions reference the reward forever; retire it by emptying stock.
                return conn.execute(
                    "UPDATE rewards SET available_quantity = 0 WHERE id = ?", (reward_id,)
                ).rowcount
            return conn.execute("DELETE FROM rewards WHERE id = ?", (reward_id,)).rowcount

    def redeem(self, redemption_id, user_id, reward_id, cost, now_iso):
        """
        Deduct points, decrement stock and record the redemption in one transaction.
        Returns (True, None) or (False, "insufficient_points" | "out_of_stock").
        """
        with self._session() as conn:
            debited = conn.execute("""
                UPDATE profiles SET points = points - ?, updated_at = ?
                WHERE id = ? AND user_type = 'user' AND points >= ?
            """, (cost, now_iso, user_id, cost)).rowcount
            if debited != 1:
                conn.rollback()
                return False, "insufficient_points"

            taken = conn.execute("""
                UPDATE rewards SET available_quantity = available_quantity - 1, updated_at = ?
                WHERE id = ? AND available_quantity > 0
            """, (now_iso, reward_id)).rowcount
            if taken != 1:
                conn.rollback()
                return False, "out_of_stock"

            conn.execute("""
                INSERT INTO user_rewards (id, user_id, reward_id, points_spent, redeemed_at)
                VALUES (?, ?, ?, ?, ?)
            """, (redemption_id, user_id, reward_id, cost, now_iso))
            return True, None

    def list_redemptions(self, user_id: Optional[str] = None) -> List[Redemption]:
        query = """
            SELECT ur.id, ur.user_id, ur.reward_id, ur.points_spent, ur.redeemed_at, rw.name AS reward_name
            FROM user_rewards ur
            LEFT JOIN rewards rw ON rw.id = ur.reward_id
        """
        params = []
        if user_id is not None:
            query += " WHERE ur.user_id = ?"
            params.append(user_id)
        query += " ORDER BY ur.redeemed_at DESC"
        with self._session() as conn:
            return [
                Redemption(
                    id=r["id"],
                    user_id=r["user_id"],
                    reward_id=r["reward_id"],
                    points_spent=r["points_spent"],
                    redeemed_at=r["redeemed_at"],
                    reward_name=r["reward_name"],
                )
                for r in conn.execute(query, tuple(params)).fetchall()
            ]
