"""create_payments_table

Revision ID: 3b1f6c2a9d41
Revises:
Create Date: 2026-10-17 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '3b1f6c2a9d41'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'payments',
        sa.Column('id', sa.String(length=36), nullable=False, comment='主键（UUID）'),
        sa.Column('user_id', sa.String(length=64), nullable=False, comment='用户ID'),
        sa.Column('user_phone', sa.String(length=20), nullable=True, comment='用户手机号'),
        sa.Column('gateway_order_id', sa.String(length=64), nullable=False, comment='网关订单ID'),
        sa.Column('gateway_payment_id', sa.String(length=64), nullable=True, comment='网关支付ID'),
        sa.Column('gateway_signature', sa.String(length=128), nullable=True, comment='客户端提交的支付签名'),
        sa.Column('receipt', sa.String(length=64), nullable=True, comment='下单时发送给网关的 receipt'),
        sa.Column('idempotency_key', sa.String(length=128), nullable=True, comment='客户端幂等键（按用户唯一）'),
        sa.Column('amount', sa.Integer(), nullable=False, comment='支付金额'),
        sa.Column('currency', sa.String(length=3), nullable=False, server_default='INR', comment='货币代码 ISO-4217'),
        sa.Column('status', sa.String(length=32), nullable=False, server_default='created',
                  comment='支付状态: created/pending/paid/failed/refunded/partially_refunded'),
        sa.Column('failure_reason', sa.Text(), nullable=True, comment='失败原因'),
        sa.Column('service_name', sa.String(length=200), nullable=True),
        sa.Column('service_type', sa.String(length=100), nullable=True),
        sa.Column('booking_id', sa.String(length=64), nullable=True),
        sa.Column('booking_date', sa.Date(), nullable=True),
        sa.Column('booking_time_slot', sa.String(length=50), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('city', sa.String(length=100), nullable=True),
        sa.Column('pincode', sa.String(length=10), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('refund_id', sa.String(length=64), nullable=True, comment='最近一次网关退款ID'),
        sa.Column('refund_amount', sa.Integer(), nullable=False, server_default='0', comment='累计退款金额'),
        sa.Column('refund_status', sa.String(length=32), nullable=True, comment='partial/processed'),
        sa.Column('refund_reason', sa.Text(), nullable=True),
        sa.Column('refunded_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('booking_sync_status', sa.String(length=32), nullable=False, server_default='not_required',
                  comment='not_required/pending/synced'),
        sa.Column('booking_synced_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False, comment='创建时间'),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False, comment='更新时间'),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True, comment='支付完成时间'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('gateway_order_id', name='uq_payments_gateway_order_id'),
        sa.UniqueConstraint('user_id', 'idempotency_key', name='uq_payments_user_idempotency_key'),
        comment='支付记录表，一条记录对应一个网关订单'
    )

    op.create_index('ix_payments_user_id', 'payments', ['user_id'], unique=False)
    op.create_index('ix_payments_user_created', 'payments', ['user_id', 'created_at'], unique=False)
    op.create_index('ix_payments_user_status', 'payments', ['user_id', 'status'], unique=False)
    op.create_index('ix_payments_status', 'payments', ['status'], unique=False)
    op.create_index('ix_payments_gateway_payment_id', 'payments', ['gateway_payment_id'], unique=False)
    op.create_index('ix_payments_booking_id', 'payments', ['booking_id'], unique=False)
    op.create_index('ix_payments_booking_sync_status', 'payments', ['booking_sync_status'], unique=False)


def downgrade() -> None:
    op.drop_index('ix_payments_booking_sync_status', table_name='payments')
    op.drop_index('ix_payments_booking_id', table_name='payments')
    op.drop_index('ix_payments_gateway_payment_id', table_name='payments')
    op.drop_index('ix_payments_status', table_name='payments')
    op.drop_index('ix_payments_user_status', table_name='payments')
    op.drop_index('ix_payments_user_created', table_name='payments')
    op.drop_index('ix_payments_user_id', table_name='payments')
    op.drop_table('payments')
