"""Create student, result, academic profile and upload tracking tables.

Revision ID: create_result_tables
Revises:
Create Date: 2026-10-19

The (student_id, course_code, session, semester) index on results is
intentionally NOT unique: duplicates are detected during import validation.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'create_result_tables'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


uploadstatus = sa.Enum('SUCCESS', 'FAILED', 'PARTIAL', 'PROCESSING', name='uploadstatus')


def upgrade() -> None:
    """Create result ingestion tables."""
    op.create_table(
        'students',
        sa.Column('id', sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column('matric_number', sa.String(length=50), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=False),
        sa.Column('level', sa.String(length=20), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_students_matric_number', 'students', ['matric_number'], unique=True)

    op.create_table(
        'result_uploads',
        sa.Column('id', sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column('file_name', sa.String(length=255), nullable=False),
        sa.Column('status', uploadstatus, nullable=False),
        sa.Column('total_rows', sa.Integer(), nullable=True),
        sa.Column('selected_rows', sa.Integer(), nullable=True),
        sa.Column('successful_rows', sa.Integer(), nullable=True),
        sa.Column('unattempted_rows', sa.Integer(), nullable=True),
        sa.Column('failed_chunk', sa.Integer(), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('processing_started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('processing_completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'results',
        sa.Column('id', sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column('student_id', sa.BigInteger(), nullable=False),
        sa.Column('course_code', sa.String(length=20), nullable=False),
        sa.Column('course_title', sa.String(length=255), nullable=False),
        sa.Column('credit_units', sa.Integer(), nullable=False),
        sa.Column('grade', sa.String(length=2), nullable=False),
        sa.Column('grade_points', sa.DECIMAL(precision=4, scale=2), nullable=False),
        sa.Column('session', sa.String(length=9), nullable=False),
        sa.Column('semester', sa.String(length=10), nullable=False),
        sa.Column('level', sa.String(length=10), nullable=False),
        sa.Column('upload_id', sa.BigInteger(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['student_id'], ['students.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['upload_id'], ['result_uploads.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_results_student_id', 'results', ['student_id'])
    op.create_index('ix_results_upload_id', 'results', ['upload_id'])
    op.create_index(
        'ix_results_student_course_session_semester',
        'results',
        ['student_id', 'course_code', 'session', 'semester'],
        unique=False,
    )

    op.create_table(
        'academic_profiles',
        sa.Column('id', sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column('student_id', sa.BigInteger(), nullable=False),
        sa.Column('total_grade_points', sa.DECIMAL(precision=12, scale=2), nullable=False),
        sa.Column('total_credit_units', sa.Integer(), nullable=False),
        sa.Column('carryover_count', sa.Integer(), nullable=False),
        sa.Column('last_recomputed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['student_id'], ['students.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_academic_profiles_student_id', 'academic_profiles', ['student_id'], unique=True)


def downgrade() -> None:
    """Drop result ingestion tables."""
    op.drop_index('ix_academic_profiles_student_id', table_name='academic_profiles')
    op.drop_table('academic_profiles')
    op.drop_index('ix_results_student_course_session_semester', table_name='results')
    op.drop_index('ix_results_upload_id', table_name='results')
    op.drop_index('ix_results_student_id', table_name='results')
    op.drop_table('results')
    op.drop_table('result_uploads')
    op.drop_index('ix_students_matric_number', table_name='students')
    op.drop_table('students')
    uploadstatus.drop(op.get_bind(), checkfirst=True)
