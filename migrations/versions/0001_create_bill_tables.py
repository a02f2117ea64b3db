"""Create bill and bill_item tables

Revision ID: 0001_create_bill_tables
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001_create_bill_tables"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "bill",
        sa.Column("id", sa.String(length=36), nullable=False, comment="UUID of the bill"),
        sa.Column("community_id", sa.String(length=128), nullable=False, comment="Owning community identifier"),
        sa.Column("created_by", sa.String(length=128), nullable=False, comment="User id of the bill creator"),
        sa.Column("created_at", sa.BigInteger(), nullable=False, comment="Creation time in epoch milliseconds"),
        sa.Column("bill_name", sa.String(length=255), nullable=False, comment="Display name of the bill"),
        sa.Column("currency", sa.String(length=3), nullable=False, comment="Display currency"),
        sa.Column(
            "exchange_rate_gbp_to_cny",
            sa.Numeric(precision=12, scale=4),
            nullable=False,
            comment="GBP to CNY conversion rate, editable per bill",
        ),
        sa.Column("participants", sa.JSON(), nullable=False, comment="User ids splitting the shared items"),
        sa.Column("total", sa.Numeric(precision=10, scale=2), nullable=False, comment="Bill total in GBP"),
        sa.Column(
            "storage_path", sa.String(length=1024), nullable=True, comment="Object-store path of the receipt image"
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
            comment="Timestamp when the record was last updated",
        ),
        sa.PrimaryKeyConstraint("id"),
        comment="Bills extracted from uploaded receipts, scoped to a community",
    )
    with op.batch_alter_table("bill", schema=None) as batch_op:
        batch_op.create_index(batch_op.f("ix_bill_community_id"), ["community_id"], unique=False)

    op.create_table(
        "bill_item",
        sa.Column("id", sa.String(length=32), nullable=False, comment="Generated item key"),
        sa.Column("bill_id", sa.String(length=36), nullable=False, comment="Parent bill"),
        sa.Column("position", sa.Integer(), nullable=False, comment="Order on the receipt"),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("price", sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column(
            "claimed_by", sa.String(length=128), nullable=True, comment="User id of the claimer; NULL means shared"
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
            comment="Timestamp when the record was last updated",
        ),
        sa.ForeignKeyConstraint(["bill_id"], ["bill.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        comment="Line items of a bill",
    )
    with op.batch_alter_table("bill_item", schema=None) as batch_op:
        batch_op.create_index(batch_op.f("ix_bill_item_bill_id"), ["bill_id"], unique=False)


def downgrade():
    # Drop tables in reverse order of creation
    with op.batch_alter_table("bill_item", schema=None) as batch_op:
        batch_op.drop_index(batch_op.f("ix_bill_item_bill_id"))
    op.drop_table("bill_item")

    with op.batch_alter_table("bill", schema=None) as batch_op:
        batch_op.drop_index(batch_op.f("ix_bill_community_id"))
    op.drop_table("bill")
