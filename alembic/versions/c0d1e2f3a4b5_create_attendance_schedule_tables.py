"""create_attendance_schedule_tables

Revision ID: c0d1e2f3a4b5
Revises:
Create Date: 2026-10-19 09:00:00.000000

근태/스케줄 엔진 테이블 생성: users, contracts, schedules, schedule_trade_requests,
attendances, attendance_correction_requests, approval_requests, notifications.
Create the attendance and schedule lifecycle tables.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID


# revision identifiers, used by Alembic.
revision: str = 'c0d1e2f3a4b5'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # users — 직원 (identity is owned upstream; mirrored for scoping and names)
    op.create_table(
        'users',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('company_id', UUID(as_uuid=True), nullable=False),
        sa.Column('brand_id', UUID(as_uuid=True), nullable=True),
        sa.Column('store_id', UUID(as_uuid=True), nullable=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('role', sa.String(30), server_default='employee', nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_users_company_role', 'users', ['company_id', 'role'])

    # contracts — 근로 계약 (weekly work pattern as JSONB)
    op.create_table(
        'contracts',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('staff_id', UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('company_id', UUID(as_uuid=True), nullable=False),
        sa.Column('brand_id', UUID(as_uuid=True), nullable=True),
        sa.Column('store_id', UUID(as_uuid=True), nullable=True),
        sa.Column('position', sa.String(100), nullable=True),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('work_schedules', JSONB(), server_default=sa.text("'[]'::jsonb"), nullable=False),
        sa.Column('status', sa.String(20), server_default='ACTIVE', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_contracts_staff_status', 'contracts', ['staff_id', 'status'])

    # schedules — 스케줄 (natural key: staff, work date, source, start)
    op.create_table(
        'schedules',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('contract_id', UUID(as_uuid=True), sa.ForeignKey('contracts.id', ondelete='SET NULL'), nullable=True),
        sa.Column('staff_id', UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('company_id', UUID(as_uuid=True), nullable=False),
        sa.Column('brand_id', UUID(as_uuid=True), nullable=True),
        sa.Column('store_id', UUID(as_uuid=True), nullable=True),
        sa.Column('position', sa.String(100), nullable=True),
        sa.Column('work_date', sa.Date(), nullable=False),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('break_minutes', sa.Integer(), server_default='60', nullable=False),
        sa.Column('status', sa.String(20), server_default='SCHEDULED', nullable=False),
        sa.Column('generated_by', sa.String(20), server_default='MANUAL', nullable=False),
        sa.Column('traded_from_id', UUID(as_uuid=True), sa.ForeignKey('schedules.id', ondelete='SET NULL'), nullable=True),
        sa.Column('original_staff_id', UUID(as_uuid=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_unique_constraint(
        'uq_schedules_slot',
        'schedules',
        ['staff_id', 'work_date', 'generated_by', 'start_time'],
    )
    op.create_index('ix_schedules_company_date', 'schedules', ['company_id', 'work_date'])
    op.create_index('ix_schedules_staff_date', 'schedules', ['staff_id', 'work_date'])

    # schedule_trade_requests — 스케줄 교환 요청
    op.create_table(
        'schedule_trade_requests',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('company_id', UUID(as_uuid=True), nullable=False),
        sa.Column('requester_id', UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('requester_schedule_id', UUID(as_uuid=True), sa.ForeignKey('schedules.id', ondelete='CASCADE'), nullable=False),
        sa.Column('target_id', UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('target_schedule_id', UUID(as_uuid=True), sa.ForeignKey('schedules.id', ondelete='CASCADE'), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('status', sa.String(30), server_default='PENDING', nullable=False),
        sa.Column('requires_manager_approval', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('response_comment', sa.Text(), nullable=True),
        sa.Column('responded_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('manager_id', UUID(as_uuid=True), nullable=True),
        sa.Column('manager_comment', sa.Text(), nullable=True),
        sa.Column('manager_responded_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    # 진행 중 요청 1건 제한 — At most one open request per source entry
    op.create_index(
        'uq_trade_open_source',
        'schedule_trade_requests',
        ['requester_schedule_id'],
        unique=True,
        postgresql_where=sa.text("status IN ('PENDING', 'AWAITING_APPROVAL')"),
    )
    op.create_index('ix_trade_target_status', 'schedule_trade_requests', ['target_id', 'status'])

    # attendances — 근태 기록 (one record per staff per work date)
    op.create_table(
        'attendances',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('staff_id', UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('company_id', UUID(as_uuid=True), nullable=False),
        sa.Column('brand_id', UUID(as_uuid=True), nullable=True),
        sa.Column('store_id', UUID(as_uuid=True), nullable=True),
        sa.Column('work_date', sa.Date(), nullable=False),
        sa.Column('scheduled_check_in', sa.DateTime(timezone=True), nullable=True),
        sa.Column('scheduled_check_out', sa.DateTime(timezone=True), nullable=True),
        sa.Column('actual_check_in', sa.DateTime(timezone=True), nullable=True),
        sa.Column('actual_check_out', sa.DateTime(timezone=True), nullable=True),
        sa.Column('break_minutes', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(30), server_default='WORKING', nullable=False),
        sa.Column('work_hours', sa.Float(), server_default='0', nullable=False),
        sa.Column('overtime_hours', sa.Float(), server_default='0', nullable=False),
        sa.Column('night_hours', sa.Float(), server_default='0', nullable=False),
        sa.Column('extensions', JSONB(), server_default=sa.text("'{}'::jsonb"), nullable=False),
        sa.Column('unscheduled_reason', sa.Text(), nullable=True),
        sa.Column('unscheduled_decided_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('unscheduled_decided_by', UUID(as_uuid=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_unique_constraint('uq_attendances_staff_date', 'attendances', ['staff_id', 'work_date'])
    op.create_index('ix_attendances_company_date', 'attendances', ['company_id', 'work_date'])
    # 미퇴근 기록 조회용 — Partial index for the auto-checkout sweep
    op.create_index(
        'ix_attendances_open',
        'attendances',
        ['work_date'],
        postgresql_where=sa.text('actual_check_in IS NOT NULL AND actual_check_out IS NULL'),
    )

    # attendance_correction_requests — 지각/조퇴 수정 요청
    op.create_table(
        'attendance_correction_requests',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('attendance_id', UUID(as_uuid=True), sa.ForeignKey('attendances.id', ondelete='CASCADE'), nullable=False),
        sa.Column('staff_id', UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('company_id', UUID(as_uuid=True), nullable=False),
        sa.Column('store_id', UUID(as_uuid=True), nullable=True),
        sa.Column('request_type', sa.String(30), nullable=False),
        sa.Column('original_check_in', sa.DateTime(timezone=True), nullable=True),
        sa.Column('original_check_out', sa.DateTime(timezone=True), nullable=True),
        sa.Column('requested_check_in', sa.DateTime(timezone=True), nullable=True),
        sa.Column('requested_check_out', sa.DateTime(timezone=True), nullable=True),
        sa.Column('reason', sa.Text(), server_default='', nullable=False),
        sa.Column('status', sa.String(20), server_default='PENDING', nullable=False),
        sa.Column('auto_generated', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('notification_sent', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('notification_sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('reviewed_by', UUID(as_uuid=True), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('review_comment', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_unique_constraint(
        'uq_correction_attendance_type',
        'attendance_correction_requests',
        ['attendance_id', 'request_type'],
    )

    # approval_requests — 승인 요청 (unscheduled check-in)
    op.create_table(
        'approval_requests',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('type', sa.String(30), nullable=False),
        sa.Column('requester_id', UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('company_id', UUID(as_uuid=True), nullable=False),
        sa.Column('brand_id', UUID(as_uuid=True), nullable=True),
        sa.Column('store_id', UUID(as_uuid=True), nullable=True),
        sa.Column('attendance_id', UUID(as_uuid=True), sa.ForeignKey('attendances.id', ondelete='CASCADE'), nullable=True),
        sa.Column('approver_ids', JSONB(), server_default=sa.text("'[]'::jsonb"), nullable=False),
        sa.Column('details', JSONB(), server_default=sa.text("'{}'::jsonb"), nullable=False),
        sa.Column('final_status', sa.String(20), server_default='PENDING', nullable=False),
        sa.Column('finalized_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_approval_requests_attendance', 'approval_requests', ['attendance_id', 'type'])

    # notifications — 알림 (persisted notification intents)
    op.create_table(
        'notifications',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', UUID(as_uuid=True), nullable=False),
        sa.Column('company_id', UUID(as_uuid=True), nullable=True),
        sa.Column('category', sa.String(20), nullable=False),
        sa.Column('priority', sa.String(10), server_default='NORMAL', nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('body', sa.Text(), nullable=False),
        sa.Column('deep_link', sa.String(300), nullable=True),
        sa.Column('actions', JSONB(), server_default=sa.text("'[]'::jsonb"), nullable=False),
        sa.Column('data', JSONB(), server_default=sa.text("'{}'::jsonb"), nullable=False),
        sa.Column('is_read', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index(
        'ix_notifications_user_category_created',
        'notifications',
        ['user_id', 'category', 'created_at'],
    )


def downgrade() -> None:
    op.drop_table('notifications')
    op.drop_table('approval_requests')
    op.drop_table('attendance_correction_requests')
    op.drop_table('attendances')
    op.drop_table('schedule_trade_requests')
    op.drop_table('schedules')
    op.drop_table('contracts')
    op.drop_table('users')
