"""League blocks, final brackets, player contact fields and match result metadata

Revision ID: 002_league_and_finals
Revises: 001_initial
Create Date: 2025-05-10 00:00:00.000000

"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "002_league_and_finals"
down_revision = "001_initial"
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Players: contact/auth fields and the def dummy flag
    op.add_column("players", sa.Column("phone", sa.String(), nullable=True))
    op.add_column("players", sa.Column("address", sa.String(), nullable=True))
    op.add_column("players", sa.Column("avatar_url", sa.String(), nullable=True))
    op.add_column("players", sa.Column("password_hash", sa.String(), nullable=True))
    op.add_column("players", sa.Column("is_dummy", sa.Boolean(), nullable=False, server_default=sa.false()))
    op.create_index("ix_players_phone", "players", ["phone"])

    op.create_table(
        "league_blocks",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tournament_id", sa.Integer(), nullable=False),
        sa.Column("block_no", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("label", sa.String(), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="pending"),
        sa.Column("winner_player_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournaments.id"]),
        sa.ForeignKeyConstraint(["winner_player_id"], ["players.id"]),
    )
    op.create_index("ix_league_blocks_tournament_id", "league_blocks", ["tournament_id"])

    op.create_table(
        "league_block_members",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("league_block_id", sa.Integer(), nullable=False),
        sa.Column("player_id", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["league_block_id"], ["league_blocks.id"]),
        sa.ForeignKeyConstraint(["player_id"], ["players.id"]),
        sa.UniqueConstraint("league_block_id", "player_id", name="uq_league_block_member"),
    )

    # Matches: league/bracket placement and result metadata
    op.add_column("matches", sa.Column("league_block_id", sa.Integer(), nullable=True))
    op.add_column("matches", sa.Column("round", sa.Integer(), nullable=True))
    op.add_column("matches", sa.Column("match_no", sa.Integer(), nullable=True))
    op.add_column("matches", sa.Column("end_reason", sa.String(), nullable=False, server_default="normal"))
    op.add_column("matches", sa.Column("affects_rating", sa.Boolean(), nullable=False, server_default=sa.true()))
    op.add_column(
        "matches", sa.Column("winner_handicap_delta", sa.Integer(), nullable=False, server_default="0")
    )
    op.add_column("matches", sa.Column("loser_handicap_delta", sa.Integer(), nullable=False, server_default="0"))
    op.create_index("ix_matches_league_block_id", "matches", ["league_block_id"])

    op.create_table(
        "final_brackets",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tournament_id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("champion_player_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournaments.id"]),
        sa.ForeignKeyConstraint(["champion_player_id"], ["players.id"]),
    )

    op.create_table(
        "final_round_entries",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("bracket_id", sa.Integer(), nullable=False),
        sa.Column("round_no", sa.Integer(), nullable=False),
        sa.Column("slot_no", sa.Integer(), nullable=False),
        sa.Column("player_id", sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["bracket_id"], ["final_brackets.id"]),
        sa.ForeignKeyConstraint(["player_id"], ["players.id"]),
        sa.UniqueConstraint("bracket_id", "round_no", "slot_no", name="uq_final_round_slot"),
    )

    op.create_table(
        "final_matches",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("bracket_id", sa.Integer(), nullable=False),
        sa.Column("round_no", sa.Integer(), nullable=False),
        sa.Column("match_no", sa.Integer(), nullable=False),
        sa.Column("player_a_id", sa.Integer(), nullable=True),
        sa.Column("player_b_id", sa.Integer(), nullable=True),
        sa.Column("winner_id", sa.Integer(), nullable=True),
        sa.Column("loser_id", sa.Integer(), nullable=True),
        sa.Column("winner_score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("loser_score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("sets_json", sa.JSON(), nullable=True),
        sa.Column("end_reason", sa.String(), nullable=False, server_default="normal"),
        sa.Column("affects_rating", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("status", sa.String(), nullable=False, server_default="pending"),
        sa.Column("winner_points_delta", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("loser_points_delta", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["bracket_id"], ["final_brackets.id"]),
        sa.UniqueConstraint("bracket_id", "round_no", "match_no", name="uq_final_match_no"),
    )

    op.create_table(
        "final_round_labels",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("bracket_id", sa.Integer(), nullable=False),
        sa.Column("round_no", sa.Integer(), nullable=False),
        sa.Column("label", sa.String(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["bracket_id"], ["final_brackets.id"]),
        sa.UniqueConstraint("bracket_id", "round_no", name="uq_final_round_label"),
    )


def downgrade() -> None:
    op.drop_table("final_round_labels")
    op.drop_table("final_matches")
    op.drop_table("final_round_entries")
    op.drop_table("final_brackets")

    op.drop_index("ix_matches_league_block_id", table_name="matches")
    op.drop_column("matches", "loser_handicap_delta")
    op.drop_column("matches", "winner_handicap_delta")
    op.drop_column("matches", "affects_rating")
    op.drop_column("matches", "end_reason")
    op.drop_column("matches", "match_no")
    op.drop_column("matches", "round")
    op.drop_column("matches", "league_block_id")

    op.drop_table("league_block_members")
    op.drop_index("ix_league_blocks_tournament_id", table_name="league_blocks")
    op.drop_table("league_blocks")

    op.drop_index("ix_players_phone", table_name="players")
    op.drop_column("players", "is_dummy")
    op.drop_column("players", "password_hash")
    op.drop_column("players", "avatar_url")
    op.drop_column("players", "address")
    op.drop_column("players", "phone")
