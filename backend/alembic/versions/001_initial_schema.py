"""Initial schema: players, sessions, teams, tournaments, matches, notices, ranking config

Revision ID: 001_initial
Revises:
Create Date: 2025-04-01 00:00:00.000000

"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "players",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("handle_name", sa.String(), nullable=False),
        sa.Column("full_name", sa.String(), nullable=True),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("ranking_points", sa.Integer(), nullable=False, server_default="1000"),
        sa.Column("handicap", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("matches_played", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("wins", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("losses", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_players_handle_name", "players", ["handle_name"], unique=True)

    op.create_table(
        "auth_sessions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("player_id", sa.Integer(), nullable=False),
        sa.Column("token_hash", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("revoked_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["player_id"], ["players.id"]),
    )
    op.create_index("ix_auth_sessions_player_id", "auth_sessions", ["player_id"])
    op.create_index("ix_auth_sessions_token_hash", "auth_sessions", ["token_hash"], unique=True)

    op.create_table(
        "teams",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["created_by"], ["players.id"]),
    )
    op.create_index("ix_teams_name", "teams", ["name"], unique=True)

    op.create_table(
        "team_members",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("team_id", sa.Integer(), nullable=False),
        sa.Column("player_id", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["team_id"], ["teams.id"]),
        sa.ForeignKeyConstraint(["player_id"], ["players.id"]),
        sa.UniqueConstraint("team_id", "player_id", name="uq_team_member"),
    )

    op.create_table(
        "tournaments",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("mode", sa.String(), nullable=False, server_default="singles"),
        sa.Column("size", sa.Integer(), nullable=False, server_default="8"),
        sa.Column("best_of", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("point_cap", sa.Integer(), nullable=False, server_default="15"),
        sa.Column("apply_handicap", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("time_limit_minutes", sa.Integer(), nullable=False, server_default="30"),
        sa.Column("notes", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "tournament_entries",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tournament_id", sa.Integer(), nullable=False),
        sa.Column("player_id", sa.Integer(), nullable=True),
        sa.Column("team_id", sa.Integer(), nullable=True),
        sa.Column("seed", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournaments.id"]),
        sa.ForeignKeyConstraint(["player_id"], ["players.id"]),
        sa.ForeignKeyConstraint(["team_id"], ["teams.id"]),
    )

    # Free and bracket matches; league columns arrive in 002
    op.create_table(
        "matches",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("mode", sa.String(), nullable=False, server_default="singles"),
        sa.Column("status", sa.String(), nullable=False, server_default="pending"),
        sa.Column("match_date", sa.DateTime(), nullable=False),
        sa.Column("tournament_id", sa.Integer(), nullable=True),
        sa.Column("reporter_id", sa.Integer(), nullable=True),
        sa.Column("player_a_id", sa.Integer(), nullable=True),
        sa.Column("player_b_id", sa.Integer(), nullable=True),
        sa.Column("team_a_id", sa.Integer(), nullable=True),
        sa.Column("team_b_id", sa.Integer(), nullable=True),
        sa.Column("winner_id", sa.Integer(), nullable=True),
        sa.Column("loser_id", sa.Integer(), nullable=True),
        sa.Column("winner_team_id", sa.Integer(), nullable=True),
        sa.Column("loser_team_id", sa.Integer(), nullable=True),
        sa.Column("winner_score", sa.Integer(), nullable=True),
        sa.Column("loser_score", sa.Integer(), nullable=True),
        sa.Column("winner_points_delta", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("loser_points_delta", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("venue", sa.String(), nullable=True),
        sa.Column("notes", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournaments.id"]),
        sa.ForeignKeyConstraint(["reporter_id"], ["players.id"]),
        sa.ForeignKeyConstraint(["player_a_id"], ["players.id"]),
        sa.ForeignKeyConstraint(["player_b_id"], ["players.id"]),
        sa.ForeignKeyConstraint(["team_a_id"], ["teams.id"]),
        sa.ForeignKeyConstraint(["team_b_id"], ["teams.id"]),
        sa.ForeignKeyConstraint(["winner_id"], ["players.id"]),
        sa.ForeignKeyConstraint(["loser_id"], ["players.id"]),
        sa.ForeignKeyConstraint(["winner_team_id"], ["teams.id"]),
        sa.ForeignKeyConstraint(["loser_team_id"], ["teams.id"]),
    )
    op.create_index("ix_matches_status", "matches", ["status"])
    op.create_index("ix_matches_match_date", "matches", ["match_date"])
    op.create_index("ix_matches_tournament_id", "matches", ["tournament_id"])

    op.create_table(
        "notices",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("content", sa.String(), nullable=False),
        sa.Column("date", sa.Date(), nullable=True),
        sa.Column("is_published", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "ranking_config",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("k_factor", sa.Integer(), nullable=False, server_default="32"),
        sa.Column("score_diff_multiplier", sa.Float(), nullable=False, server_default="0.05"),
        sa.Column("handicap_diff_multiplier", sa.Float(), nullable=False, server_default="0.02"),
        sa.Column("win_threshold_handicap_change", sa.Integer(), nullable=False, server_default="10"),
        sa.Column("handicap_change_amount", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("trend_daily_days", sa.Integer(), nullable=False, server_default="5"),
        sa.Column("trend_weekly_weeks", sa.Integer(), nullable=False, server_default="5"),
        sa.Column("trend_monthly_months", sa.Integer(), nullable=False, server_default="5"),
        sa.Column("trend_default_mode", sa.String(), nullable=False, server_default="daily"),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )


def downgrade() -> None:
    op.drop_table("ranking_config")
    op.drop_table("notices")
    op.drop_index("ix_matches_tournament_id", table_name="matches")
    op.drop_index("ix_matches_match_date", table_name="matches")
    op.drop_index("ix_matches_status", table_name="matches")
    op.drop_table("matches")
    op.drop_table("tournament_entries")
    op.drop_table("tournaments")
    op.drop_table("team_members")
    op.drop_index("ix_teams_name", table_name="teams")
    op.drop_table("teams")
    op.drop_index("ix_auth_sessions_token_hash", table_name="auth_sessions")
    op.drop_index("ix_auth_sessions_player_id", table_name="auth_sessions")
    op.drop_table("auth_sessions")
    op.drop_index("ix_players_handle_name", table_name="players")
    op.drop_table("players")
