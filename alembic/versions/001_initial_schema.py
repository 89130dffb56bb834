"""Initial schema: profiles, points ledger, daily quests, arena and tasks.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-18
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Profiles ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS profiles (
            id VARCHAR(36) PRIMARY KEY,
            wallet_address VARCHAR(64) NOT NULL,
            username VARCHAR(32) NOT NULL,
            referral_code VARCHAR(8) NOT NULL,
            referred_by VARCHAR(64),
            referral_count INTEGER NOT NULL DEFAULT 0,
            timezone VARCHAR(64) NOT NULL DEFAULT 'UTC',
            ip_address VARCHAR(45),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT profiles_wallet_address_key UNIQUE (wallet_address),
            CONSTRAINT profiles_username_key UNIQUE (username),
            CONSTRAINT profiles_referral_code_key UNIQUE (referral_code)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_profiles_ip_address ON profiles(ip_address)")

    # --- Points ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_points (
            wallet_address VARCHAR(64) PRIMARY KEY,
            points BIGINT NOT NULL DEFAULT 0 CHECK (points >= 0),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS points_ledger (
            id VARCHAR(36) PRIMARY KEY,
            wallet_address VARCHAR(64) NOT NULL,
            amount INTEGER NOT NULL CHECK (amount > 0),
            action VARCHAR(32) NOT NULL,
            reason VARCHAR(128) NOT NULL,
            actor VARCHAR(64) NOT NULL,
            reference_id VARCHAR(64),
            idempotency_key VARCHAR(160) NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT points_ledger_idempotency_key_key UNIQUE (idempotency_key)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_points_ledger_wallet_address ON points_ledger(wallet_address)")

    # --- Daily quests & streaks ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS daily_quests (
            id VARCHAR(36) PRIMARY KEY,
            user_wallet VARCHAR(64) NOT NULL,
            quest_date DATE NOT NULL,
            checkin_done BOOLEAN NOT NULL DEFAULT false,
            categories_created INTEGER NOT NULL DEFAULT 0,
            clips_uploaded INTEGER NOT NULL DEFAULT 0,
            votes_cast INTEGER NOT NULL DEFAULT 0,
            rewarded_checkin BOOLEAN NOT NULL DEFAULT false,
            rewarded_category BOOLEAN NOT NULL DEFAULT false,
            rewarded_votes BOOLEAN NOT NULL DEFAULT false,
            streak_count INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT daily_quests_wallet_date_key UNIQUE (user_wallet, quest_date)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_daily_quests_quest_date ON daily_quests(quest_date)")
    op.execute("""
        CREATE TABLE IF NOT EXISTS checkin_streaks (
            wallet_address VARCHAR(64) PRIMARY KEY,
            current_streak INTEGER NOT NULL DEFAULT 0,
            longest_streak INTEGER NOT NULL DEFAULT 0,
            last_checkin_date DATE,
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS resets_audit (
            id VARCHAR(36) PRIMARY KEY,
            reset_type VARCHAR(32) NOT NULL,
            records_affected INTEGER NOT NULL DEFAULT 0,
            actor VARCHAR(64) NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    # --- Arena ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS categories (
            id VARCHAR(36) PRIMARY KEY,
            name VARCHAR(64) NOT NULL,
            creator_wallet VARCHAR(64) NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            expires_at TIMESTAMPTZ NOT NULL
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_categories_creator_wallet ON categories(creator_wallet)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_categories_expires_at ON categories(expires_at)")
    op.execute("""
        CREATE TABLE IF NOT EXISTS audio_clips (
            id VARCHAR(36) PRIMARY KEY,
            title VARCHAR(100) NOT NULL,
            creator_wallet VARCHAR(64) NOT NULL,
            category_id VARCHAR(36) NOT NULL REFERENCES categories(id) ON DELETE CASCADE,
            audio_url TEXT,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT audio_clips_category_creator_key UNIQUE (category_id, creator_wallet)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_audio_clips_creator_wallet ON audio_clips(creator_wallet)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_audio_clips_category_id ON audio_clips(category_id)")
    op.execute("""
        CREATE TABLE IF NOT EXISTS votes (
            id VARCHAR(36) PRIMARY KEY,
            battle_id VARCHAR(64) NOT NULL,
            clip_id VARCHAR(36) NOT NULL REFERENCES audio_clips(id) ON DELETE CASCADE,
            voter_wallet VARCHAR(64) NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT votes_voter_battle_key UNIQUE (voter_wallet, battle_id)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_votes_clip_id ON votes(clip_id)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_votes_voter_wallet ON votes(voter_wallet)")

    # --- Tasks ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS tasks (
            id VARCHAR(36) PRIMARY KEY,
            slug VARCHAR(64) NOT NULL,
            name VARCHAR(128) NOT NULL,
            description TEXT NOT NULL,
            task_type VARCHAR(16) NOT NULL CHECK (task_type IN ('social', 'referral')),
            external_link TEXT,
            points_reward INTEGER NOT NULL DEFAULT 0,
            max_completions INTEGER,
            sort_order INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT tasks_slug_key UNIQUE (slug)
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_tasks (
            id VARCHAR(36) PRIMARY KEY,
            user_wallet VARCHAR(64) NOT NULL,
            task_id VARCHAR(36) NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
            verified BOOLEAN NOT NULL DEFAULT false,
            completed_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT user_tasks_wallet_task_key UNIQUE (user_wallet, task_id)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_user_tasks_user_wallet ON user_tasks(user_wallet)")


def downgrade() -> None:
    for table in (
        "user_tasks",
        "tasks",
        "votes",
        "audio_clips",
        "categories",
        "resets_audit",
        "checkin_streaks",
        "daily_quests",
        "points_ledger",
        "user_points",
        "profiles",
    ):
        op.execute(f"DROP TABLE IF EXISTS {table} CASCADE")
