import pandas as pd
from typing import Dict, Any, Iterable

from infrastructure.repositories import get_profile_repo, get_report_repo
from use_cases.domain_models import WasteReport

REPORT_COLUMNS = ["id", "user_id", "waste_type", "weight", "status", "agent_id", "points_awarded", "created_at"]


def reports_frame(reports: Iterable[WasteReport]) -> pd.DataFrame:
    """Flatten report DTOs into a DataFrame with a fixed column set."""
    rows = [{col: getattr(r, col) for col in REPORT_COLUMNS} for r in reports]
    df = pd.DataFrame(rows, columns=REPORT_COLUMNS)
    if not df.empty:
        df["created_at"] = pd.to_datetime(df["created_at"], utc=True, errors="coerce")
    return df


def weight_by_type(reports: Iterable[WasteReport], status: str = "approved") -> pd.DataFrame:
    df = reports_frame(reports)
    if df.empty:
        return pd.DataFrame(columns=["waste_type", "weight"])
    if status:
        df = df[df["status"] == status]
    return (
        df.groupby("waste_type", as_index=False)["weight"].sum()
        .sort_values("weight", ascending=False)
        .reset_index(drop=True)
    )


def top_users(limit: int = 10) -> pd.DataFrame:
    """Users ranked by points balance."""
    profiles = get_profile_repo().list_profiles(role="user")
    df = pd.DataFrame(
        [{"id": p.id, "name": p.display_name, "avatar_url": p.avatar_url, "points": p.points} for p in profiles],
        columns=["id", "name", "avatar_url", "points"],
    )
    df = df[df["points"] > 0].sort_values(["points", "name"], ascending=[False, True]).head(limit)
    df.insert(0, "rank", range(1, len(df) + 1))
    return df.reset_index(drop=True)


def top_agents(limit: int = 10) -> pd.DataFrame:
    """Approved agents ranked by kilograms of waste they approved."""
    agents = get_profile_repo().list_profiles(role="agent", is_approved=True)
    agents_df = pd.DataFrame(
        [{"agent_id": p.id, "name": p.display_name, "avatar_url": p.avatar_url} for p in agents],
        columns=["agent_id", "name", "avatar_url"],
    )
    approved = reports_frame(get_report_repo().list_reports(status="approved"))
    if approved.empty or agents_df.empty:
        return pd.DataFrame(columns=["rank", "agent_id", "name", "avatar_url", "kg_collected", "reports", "points"])
    collected = (
        approved.groupby("agent_id", as_index=False)
        .agg(kg_collected=("weight", "sum"), reports=("id", "count"), points=("points_awarded", "sum"))
    )
    df = agents_df.merge(collected, on="agent_id", how="inner")
    df = df.sort_values(["kg_collected", "name"], ascending=[False, True]).head(limit)
    df["kg_collected"] = df["kg_collected"].round(1)
    df.insert(0, "rank", range(1, len(df) + 1))
    return df.reset_index(drop=True)


def platform_stats() -> Dict[str, Any]:
    repo = get_profile_repo()
    profiles = repo.list_profiles()
    counts = get_report_repo().status_counts()
    approved = reports_frame(get_report_repo().list_reports(status="approved"))
    return {
        "users": sum(1 for p in profiles if p.role == "user"),
        "approved_agents": sum(1 for p in profiles if p.role == "agent" and p.is_approved),
        "pending_agents": sum(1 for p in profiles if p.role == "agent" and not p.is_approved),
        "reports_pending": counts.get("pending", 0),
        "reports_approved": counts.get("approved", 0),
        "reports_rejected": counts.get("rejected", 0),
        "kg_collected": round(float(approved["weight"].sum()), 1) if not approved.empty else 0.0,
        "points_awarded": int(approved["points_awarded"].fillna(0).sum()) if not approved.empty else 0,
    }
