"""ORM models for the codeclub schema.

Every primary key is an application-generated opaque string id. Uniqueness
rules that guard against concurrent duplicate inserts live here as table
constraints; services rely on them failing the write rather than pre-checking.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from codeclub.db.base import Base, JSONType, new_id, utcnow

SYSTEM_ROLES = ("SYSTEM_ADMIN", "USER")
MEMBER_ROLES = ("LEADER", "MEMBER")
SKILL_REQUIREMENTS = ("NONE", "BASIC", "ADVANCED")
SNAPSHOT_TYPES = ("problem", "global")


# ---------------------------------------------------------------------------
# Identity & Membership
# ---------------------------------------------------------------------------


class User(Base):
    """A platform account, created on first authentication."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    display_name: Mapped[str | None] = mapped_column(String(64), nullable=True)
    grade: Mapped[str | None] = mapped_column(String(32), nullable=True)
    icon_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    system_role: Mapped[str] = mapped_column(String(16), nullable=False, default="USER")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    providers: Mapped[list[UserProvider]] = relationship("UserProvider", back_populates="user")
    memberships: Mapped[list[OrganizationMember]] = relationship("OrganizationMember", back_populates="user")

    @property
    def is_admin(self) -> bool:
        return self.system_role == "SYSTEM_ADMIN"


class UserProvider(Base):
    """Binding between a local user and an external identity."""

    __tablename__ = "user_providers"
    __table_args__ = (
        UniqueConstraint("user_id", "provider", name="uq_user_providers_user_provider"),
        UniqueConstraint("provider", "provider_id", name="uq_user_providers_provider_identity"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    provider: Mapped[str] = mapped_column(String(32), nullable=False)
    provider_id: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    user: Mapped[User] = relationship("User", back_populates="providers")


class Organization(Base):
    """A club or team that owns problems."""

    __tablename__ = "organizations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    icon_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    members: Mapped[list[OrganizationMember]] = relationship("OrganizationMember", back_populates="organization")


class OrganizationMember(Base):
    """Membership of a user in an organization, carrying a role."""

    __tablename__ = "organization_members"
    __table_args__ = (
        UniqueConstraint("user_id", "organization_id", name="uq_organization_members_user_org"),
        Index("ix_organization_members_org", "organization_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    organization_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    role: Mapped[str] = mapped_column(String(16), nullable=False, default="MEMBER")
    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    user: Mapped[User] = relationship("User", back_populates="memberships")
    organization: Mapped[Organization] = relationship("Organization", back_populates="members")


# ---------------------------------------------------------------------------
# Problem Catalog
# ---------------------------------------------------------------------------


class Tag(Base):
    """Shared tag vocabulary for problems and external learning logs."""

    __tablename__ = "tags"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)


class Problem(Base):
    """A judged exercise owned by an organization."""

    __tablename__ = "problems"
    __table_args__ = (
        CheckConstraint(
            "submit_count >= accept_count AND accept_count >= 0",
            name="ck_problems_counters",
        ),
        Index("ix_problems_org_visibility", "organization_id", "is_public", "is_archived"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    slug: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    organization_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("organizations.id", ondelete="RESTRICT"), nullable=False
    )
    difficulty_level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    content: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    constraints: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    time_limit: Mapped[int] = mapped_column(Integer, nullable=False)
    memory_limit: Mapped[int] = mapped_column(Integer, nullable=False)
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    submit_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    accept_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_by_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    updated_by_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("users.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    test_cases: Mapped[list[TestCase]] = relationship(
        "TestCase", back_populates="problem", order_by="TestCase.position"
    )
    sample_codes: Mapped[list[ProblemSampleCode]] = relationship("ProblemSampleCode", back_populates="problem")
    tags: Mapped[list[Tag]] = relationship("Tag", secondary="problem_tags", viewonly=True)


class ProblemSampleCode(Base):
    """Starter code for a problem in one language."""

    __tablename__ = "problem_sample_codes"
    __table_args__ = (
        UniqueConstraint("problem_id", "language", name="uq_problem_sample_codes_problem_language"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    problem_id: Mapped[str] = mapped_column(String(36), ForeignKey("problems.id", ondelete="CASCADE"), nullable=False)
    language: Mapped[str] = mapped_column(String(32), nullable=False)
    code: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    problem: Mapped[Problem] = relationship("Problem", back_populates="sample_codes")


class TestCase(Base):
    """One input / expected-output pair of a problem."""

    __tablename__ = "test_cases"
    __table_args__ = (
        UniqueConstraint("problem_id", "position", name="uq_test_cases_problem_position"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    problem_id: Mapped[str] = mapped_column(String(36), ForeignKey("problems.id", ondelete="CASCADE"), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    input: Mapped[str] = mapped_column(Text, nullable=False, default="")
    expected_output: Mapped[str] = mapped_column(Text, nullable=False, default="")
    is_example: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_hidden: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    problem: Mapped[Problem] = relationship("Problem", back_populates="test_cases")


class ProblemTag(Base):
    __tablename__ = "problem_tags"

    problem_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("problems.id", ondelete="CASCADE"), primary_key=True
    )
    tag_id: Mapped[str] = mapped_column(String(36), ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True)


# ---------------------------------------------------------------------------
# Submissions & Rankings
# ---------------------------------------------------------------------------


class Submission(Base):
    """One judging attempt. Append-only: the verdict is written exactly once."""

    __tablename__ = "submissions"
    __table_args__ = (
        Index("ix_submissions_user_problem_status", "user_id", "problem_id", "status"),
        Index("ix_submissions_problem_status_time", "problem_id", "status", "execution_time"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    problem_id: Mapped[str] = mapped_column(String(36), ForeignKey("problems.id"), nullable=False)
    organization_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("organizations.id", ondelete="SET NULL"), nullable=True
    )
    code: Mapped[str] = mapped_column(Text, nullable=False)
    language: Mapped[str] = mapped_column(String(32), nullable=False)
    status: Mapped[str] = mapped_column(String(48), nullable=False, default="pending")
    execution_time: Mapped[int | None] = mapped_column(Integer, nullable=True)
    memory_usage: Mapped[float | None] = mapped_column(Float, nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    test_results: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, nullable=False, default=list)
    score: Mapped[float | None] = mapped_column(Float, nullable=True)
    problem_version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    judged_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class RankingSnapshot(Base):
    """Write-once ranking rollup. The newest row per (type, target_id) is current."""

    __tablename__ = "ranking_snapshots"
    __table_args__ = (
        Index("ix_ranking_snapshots_scope_created", "type", "target_id", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    target_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    data: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


# ---------------------------------------------------------------------------
# Skill Tracking
# ---------------------------------------------------------------------------


class SkillCategory(Base):
    __tablename__ = "skill_categories"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class Skill(Base):
    __tablename__ = "skills"
    __table_args__ = (
        UniqueConstraint("category_id", "name", name="uq_skills_category_name"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    category_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("skill_categories.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    requirement: Mapped[str] = mapped_column(String(16), nullable=False, default="NONE")


class SkillProgress(Base):
    """Per-user achievement of a skill. Achievement is never cleared."""

    __tablename__ = "skill_progress"
    __table_args__ = (
        UniqueConstraint("user_id", "skill_id", name="uq_skill_progress_user_skill"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    skill_id: Mapped[str] = mapped_column(String(36), ForeignKey("skills.id", ondelete="CASCADE"), nullable=False)
    is_achieved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    achieved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


# ---------------------------------------------------------------------------
# Auxiliary
# ---------------------------------------------------------------------------


class Notification(Base):
    __tablename__ = "notifications"
    __table_args__ = (
        Index("ix_notifications_user_read", "user_id", "is_read"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    link: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


class Announcement(Base):
    __tablename__ = "announcements"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    author_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    organization_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("organizations.id", ondelete="CASCADE"), nullable=True
    )
    is_published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


class SystemSetting(Base):
    __tablename__ = "system_settings"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    key: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    value: Mapped[Any] = mapped_column(JSONType, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    updated_by_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("users.id"), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


class ExternalLearning(Base):
    """A learning activity logged from outside the platform (book, course, contest)."""

    __tablename__ = "external_learnings"
    __table_args__ = (
        Index("ix_external_learnings_user_studied", "user_id", "studied_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    url: Mapped[str | None] = mapped_column(Text, nullable=True)
    source: Mapped[str | None] = mapped_column(String(64), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    studied_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    duration_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    attachments: Mapped[list[ExternalLearningAttachment]] = relationship(
        "ExternalLearningAttachment", back_populates="external_learning"
    )
    tags: Mapped[list[Tag]] = relationship("Tag", secondary="external_learning_tags", viewonly=True)


class ExternalLearningAttachment(Base):
    __tablename__ = "external_learning_attachments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    external_learning_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("external_learnings.id", ondelete="CASCADE"), nullable=False
    )
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_url: Mapped[str] = mapped_column(Text, nullable=False)
    content_type: Mapped[str | None] = mapped_column(String(128), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    external_learning: Mapped[ExternalLearning] = relationship("ExternalLearning", back_populates="attachments")


class ExternalLearningTag(Base):
    __tablename__ = "external_learning_tags"

    external_learning_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("external_learnings.id", ondelete="CASCADE"), primary_key=True
    )
    tag_id: Mapped[str] = mapped_column(String(36), ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True)
