"""
SQLAlchemy 2.0 Models for Study Group.

Uses modern declarative syntax with Mapped[] type annotations.
Column types are portable (Uuid, DateTime) so the same metadata runs on
PostgreSQL in production and SQLite in tests.
"""

from datetime import datetime
from enum import Enum as PyEnum
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from studygroup.db.base import Base


# =============================================================================
# ENUMS
# =============================================================================


class UserRole(str, PyEnum):
    """Account role. Professors own classes; students join them."""

    STUDENT = "student"
    PROFESSOR = "professor"


ALLOWED_DOCUMENT_TYPES = ("pdf", "pptx", "docx", "png", "jpg", "jpeg", "xlsx")


# =============================================================================
# MODELS
# =============================================================================


class User(Base):
    """
    Core user account (the profile).

    Decoupled from auth providers - users can have multiple auth_identities
    linked to one account.
    """

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("role IN ('student', 'professor')", name="valid_role"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    email: Mapped[Optional[str]] = mapped_column(String(255), unique=True, index=True, nullable=True)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    username: Mapped[Optional[str]] = mapped_column(String(50), unique=True, nullable=True)
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default=UserRole.STUDENT.value, server_default=UserRole.STUDENT.value
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    # Relationships
    auth_identities: Mapped[list["AuthIdentity"]] = relationship(
        "AuthIdentity", back_populates="user", cascade="all, delete-orphan"
    )
    owned_classes: Mapped[list["Class"]] = relationship(
        "Class", back_populates="owner", passive_deletes=True
    )
    enrollments: Mapped[list["ClassEnrollment"]] = relationship(
        "ClassEnrollment", back_populates="user", passive_deletes=True
    )
    documents: Mapped[list["Document"]] = relationship(
        "Document", back_populates="owner", passive_deletes=True
    )

    @property
    def is_professor(self) -> bool:
        return self.role == UserRole.PROFESSOR.value


class AuthIdentity(Base):
    """
    OAuth provider identity linked to a user.

    Does NOT store OAuth access/refresh tokens - we only verify id_tokens at login.
    """

    __tablename__ = "auth_identities"
    __table_args__ = (
        UniqueConstraint("provider", "provider_user_id", name="unique_provider_identity"),
        Index("idx_auth_identities_provider_lookup", "provider", "provider_user_id"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    provider: Mapped[str] = mapped_column(String(50), nullable=False)  # 'google'
    provider_user_id: Mapped[str] = mapped_column(String(255), nullable=False)  # Provider's 'sub' claim
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)  # For audit
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    last_login_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    user: Mapped["User"] = relationship("User", back_populates="auth_identities")


class Class(Base):
    """
    A course/section grouping documents and enrolled users.

    Owned by the professor who created it. Deleting a class removes its
    documents and enrollments through ON DELETE CASCADE.
    """

    __tablename__ = "classes"
    __table_args__ = (
        Index("idx_classes_owner_created", "owner_id", "created_at"),
        CheckConstraint(
            "system_prompt IS NULL OR length(system_prompt) <= 2000",
            name="valid_system_prompt_length",
        ),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    owner_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    code: Mapped[Optional[str]] = mapped_column(String(20), unique=True, nullable=True)  # Join code, upper-case
    system_prompt: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    # Relationships
    owner: Mapped["User"] = relationship("User", back_populates="owned_classes")
    enrollments: Mapped[list["ClassEnrollment"]] = relationship(
        "ClassEnrollment", back_populates="class_", passive_deletes=True
    )
    documents: Mapped[list["Document"]] = relationship(
        "Document", back_populates="class_", passive_deletes=True
    )


class ClassEnrollment(Base):
    """
    Membership record linking a user to a class.

    At most one row per (class, user); the unique constraint is the source of
    truth, the application pre-check only shapes the error message.
    """

    __tablename__ = "class_enrollments"
    __table_args__ = (
        UniqueConstraint("class_id", "user_id", name="unique_class_enrollment"),
        Index("idx_class_enrollments_user", "user_id"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    class_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("classes.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    enrolled_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    class_: Mapped["Class"] = relationship("Class", back_populates="enrollments")
    user: Mapped["User"] = relationship("User", back_populates="enrollments")


class Document(Base):
    """
    Uploaded file metadata.

    The bytes live in object storage under storage_path; a row only exists
    for an object that was stored successfully.
    """

    __tablename__ = "documents"
    __table_args__ = (
        Index("idx_documents_user_created", "user_id", "created_at"),
        Index("idx_documents_class_created", "class_id", "created_at"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    class_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid, ForeignKey("classes.id", ondelete="CASCADE"), nullable=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    file_type: Mapped[str] = mapped_column(String(10), nullable=False)
    file_size: Mapped[Optional[int]] = mapped_column(nullable=True)
    storage_path: Mapped[str] = mapped_column(String(), unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    owner: Mapped["User"] = relationship("User", back_populates="documents")
    class_: Mapped[Optional["Class"]] = relationship("Class", back_populates="documents")
