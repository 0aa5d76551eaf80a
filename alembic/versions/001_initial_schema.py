"""Initial schema: identity, problem catalog, submissions, rankings, skills, auxiliary.

Primary keys are application-generated string ids (uuid4 text).

Revision ID: 001_initial_schema
Revises: None
Create Date: 2026-10-19
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Identity & Membership ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id VARCHAR(36) PRIMARY KEY,
            email VARCHAR(320) NOT NULL UNIQUE,
            name VARCHAR(128) NOT NULL,
            display_name VARCHAR(64),
            grade VARCHAR(32),
            icon_url TEXT,
            system_role VARCHAR(16) NOT NULL DEFAULT 'USER',
            is_active BOOLEAN NOT NULL DEFAULT true,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_providers (
            id VARCHAR(36) PRIMARY KEY,
            user_id VARCHAR(36) NOT NULL REFERENCES users(id) ON DELETE RESTRICT,
            provider VARCHAR(32) NOT NULL,
            provider_id VARCHAR(255) NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_user_providers_user_provider UNIQUE (user_id, provider),
            CONSTRAINT uq_user_providers_provider_identity UNIQUE (provider, provider_id)
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS organizations (
            id VARCHAR(36) PRIMARY KEY,
            name VARCHAR(128) NOT NULL UNIQUE,
            description TEXT,
            icon_url TEXT,
            is_active BOOLEAN NOT NULL DEFAULT true,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS organization_members (
            id VARCHAR(36) PRIMARY KEY,
            user_id VARCHAR(36) NOT NULL REFERENCES users(id) ON DELETE RESTRICT,
            organization_id VARCHAR(36) NOT NULL REFERENCES organizations(id) ON DELETE CASCADE,
            role VARCHAR(16) NOT NULL DEFAULT 'MEMBER',
            joined_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_organization_members_user_org UNIQUE (user_id, organization_id)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_organization_members_org
        ON organization_members(organization_id)
    """)

    # --- Problem Catalog ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS tags (
            id VARCHAR(36) PRIMARY KEY,
            name VARCHAR(64) NOT NULL UNIQUE
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS problems (
            id VARCHAR(36) PRIMARY KEY,
            slug VARCHAR(128) NOT NULL UNIQUE,
            title VARCHAR(255) NOT NULL,
            organization_id VARCHAR(36) NOT NULL REFERENCES organizations(id) ON DELETE RESTRICT,
            difficulty_level INTEGER NOT NULL DEFAULT 1,
            content JSONB NOT NULL DEFAULT '{}',
            constraints JSONB NOT NULL DEFAULT '{}',
            time_limit INTEGER NOT NULL,
            memory_limit INTEGER NOT NULL,
            is_public BOOLEAN NOT NULL DEFAULT false,
            is_archived BOOLEAN NOT NULL DEFAULT false,
            version INTEGER NOT NULL DEFAULT 1,
            submit_count INTEGER NOT NULL DEFAULT 0,
            accept_count INTEGER NOT NULL DEFAULT 0,
            created_by_id VARCHAR(36) NOT NULL REFERENCES users(id),
            updated_by_id VARCHAR(36) REFERENCES users(id),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_problems_counters CHECK (submit_count >= accept_count AND accept_count >= 0)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_problems_org_visibility
        ON problems(organization_id, is_public, is_archived)
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS problem_sample_codes (
            id VARCHAR(36) PRIMARY KEY,
            problem_id VARCHAR(36) NOT NULL REFERENCES problems(id) ON DELETE CASCADE,
            language VARCHAR(32) NOT NULL,
            code TEXT NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_problem_sample_codes_problem_language UNIQUE (problem_id, language)
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS test_cases (
            id VARCHAR(36) PRIMARY KEY,
            problem_id VARCHAR(36) NOT NULL REFERENCES problems(id) ON DELETE CASCADE,
            position INTEGER NOT NULL,
            input TEXT NOT NULL DEFAULT '',
            expected_output TEXT NOT NULL DEFAULT '',
            is_example BOOLEAN NOT NULL DEFAULT false,
            is_hidden BOOLEAN NOT NULL DEFAULT true,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_test_cases_problem_position UNIQUE (problem_id, position)
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS problem_tags (
            problem_id VARCHAR(36) NOT NULL REFERENCES problems(id) ON DELETE CASCADE,
            tag_id VARCHAR(36) NOT NULL REFERENCES tags(id) ON DELETE CASCADE,
            PRIMARY KEY (problem_id, tag_id)
        )
    """)

    # --- Submissions & Rankings ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS submissions (
            id VARCHAR(36) PRIMARY KEY,
            user_id VARCHAR(36) NOT NULL REFERENCES users(id),
            problem_id VARCHAR(36) NOT NULL REFERENCES problems(id),
            organization_id VARCHAR(36) REFERENCES organizations(id) ON DELETE SET NULL,
            code TEXT NOT NULL,
            language VARCHAR(32) NOT NULL,
            status VARCHAR(48) NOT NULL DEFAULT 'pending',
            execution_time INTEGER,
            memory_usage DOUBLE PRECISION,
            error_message TEXT,
            test_results JSONB NOT NULL DEFAULT '[]',
            score DOUBLE PRECISION,
            problem_version INTEGER NOT NULL DEFAULT 1,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            judged_at TIMESTAMPTZ
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_submissions_user_problem_status
        ON submissions(user_id, problem_id, status)
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_submissions_problem_status_time
        ON submissions(problem_id, status, execution_time)
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS ranking_snapshots (
            id VARCHAR(36) PRIMARY KEY,
            type VARCHAR(16) NOT NULL,
            target_id VARCHAR(36),
            data JSONB NOT NULL DEFAULT '{}',
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_ranking_snapshots_scope_created
        ON ranking_snapshots(type, target_id, created_at)
    """)

    # --- Skill Tracking ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS skill_categories (
            id VARCHAR(36) PRIMARY KEY,
            name VARCHAR(64) NOT NULL UNIQUE,
            description TEXT,
            sort_order INTEGER NOT NULL DEFAULT 0
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS skills (
            id VARCHAR(36) PRIMARY KEY,
            category_id VARCHAR(36) NOT NULL REFERENCES skill_categories(id) ON DELETE CASCADE,
            name VARCHAR(128) NOT NULL,
            description TEXT,
            level INTEGER NOT NULL DEFAULT 1,
            requirement VARCHAR(16) NOT NULL DEFAULT 'NONE',
            CONSTRAINT uq_skills_category_name UNIQUE (category_id, name)
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS skill_progress (
            id VARCHAR(36) PRIMARY KEY,
            user_id VARCHAR(36) NOT NULL REFERENCES users(id) ON DELETE RESTRICT,
            skill_id VARCHAR(36) NOT NULL REFERENCES skills(id) ON DELETE CASCADE,
            is_achieved BOOLEAN NOT NULL DEFAULT false,
            achieved_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_skill_progress_user_skill UNIQUE (user_id, skill_id)
        )
    """)

    # --- Auxiliary ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS notifications (
            id VARCHAR(36) PRIMARY KEY,
            user_id VARCHAR(36) NOT NULL REFERENCES users(id) ON DELETE RESTRICT,
            type VARCHAR(32) NOT NULL,
            title VARCHAR(255) NOT NULL,
            message TEXT,
            link TEXT,
            is_read BOOLEAN NOT NULL DEFAULT false,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_notifications_user_read
        ON notifications(user_id, is_read)
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS announcements (
            id VARCHAR(36) PRIMARY KEY,
            title VARCHAR(255) NOT NULL,
            content TEXT NOT NULL,
            author_id VARCHAR(36) NOT NULL REFERENCES users(id),
            organization_id VARCHAR(36) REFERENCES organizations(id) ON DELETE CASCADE,
            is_published BOOLEAN NOT NULL DEFAULT false,
            published_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS system_settings (
            id VARCHAR(36) PRIMARY KEY,
            key VARCHAR(128) NOT NULL UNIQUE,
            value JSONB,
            description TEXT,
            updated_by_id VARCHAR(36) REFERENCES users(id),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS external_learnings (
            id VARCHAR(36) PRIMARY KEY,
            user_id VARCHAR(36) NOT NULL REFERENCES users(id) ON DELETE RESTRICT,
            title VARCHAR(255) NOT NULL,
            url TEXT,
            source VARCHAR(64),
            description TEXT,
            studied_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            duration_minutes INTEGER,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_external_learnings_user_studied
        ON external_learnings(user_id, studied_at DESC)
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS external_learning_attachments (
            id VARCHAR(36) PRIMARY KEY,
            external_learning_id VARCHAR(36) NOT NULL REFERENCES external_learnings(id) ON DELETE CASCADE,
            file_name VARCHAR(255) NOT NULL,
            file_url TEXT NOT NULL,
            content_type VARCHAR(128),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS external_learning_tags (
            external_learning_id VARCHAR(36) NOT NULL REFERENCES external_learnings(id) ON DELETE CASCADE,
            tag_id VARCHAR(36) NOT NULL REFERENCES tags(id) ON DELETE CASCADE,
            PRIMARY KEY (external_learning_id, tag_id)
        )
    """)


def downgrade() -> None:
    for table in (
        "external_learning_tags",
        "external_learning_attachments",
        "external_learnings",
        "system_settings",
        "announcements",
        "notifications",
        "skill_progress",
        "skills",
        "skill_categories",
        "ranking_snapshots",
        "submissions",
        "problem_tags",
        "test_cases",
        "problem_sample_codes",
        "problems",
        "tags",
        "organization_members",
        "organizations",
        "user_providers",
        "users",
    ):
        op.execute(f"DROP TABLE IF EXISTS {table} CASCADE")
