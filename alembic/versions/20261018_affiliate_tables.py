"""Create affiliate partner, product and click ledger tables.

Revision ID: 7c1e4a9b2d30
Revises:
Create Date: 2026-10-18
"""
from alembic import op
import sqlalchemy as sa

revision = "7c1e4a9b2d30"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "affiliate_partners",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False, index=True),
        sa.Column("type", sa.String(20), nullable=False, index=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true(), index=True),
        sa.Column("website", sa.String(500), nullable=True),
        sa.Column("commission_type", sa.String(20), nullable=False),
        sa.Column("commission_amount", sa.Float, nullable=False, server_default="0"),
        sa.Column("commission_currency", sa.String(3), nullable=False, server_default="INR"),
        sa.Column("conversion_goals", sa.JSON, nullable=False),
        sa.Column("attribution_window_days", sa.Integer, nullable=False, server_default="30"),
        sa.Column("created_at", sa.DateTime, nullable=False),
    )
    op.create_table(
        "products",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("partner_id", sa.String(36), sa.ForeignKey("affiliate_partners.id"),
                  nullable=False, index=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("application_url", sa.String(1000), nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true(), index=True),
        sa.Column("min_amount", sa.Float, nullable=True),
        sa.Column("max_amount", sa.Float, nullable=True),
        sa.Column("created_at", sa.DateTime, nullable=False),
    )
    op.create_table(
        "affiliate_clicks",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("tracking_id", sa.String(50), nullable=False, unique=True, index=True),
        sa.Column("partner_id", sa.String(36), sa.ForeignKey("affiliate_partners.id"), nullable=False),
        sa.Column("product_id", sa.String(36), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("user_id", sa.String(36), nullable=True, index=True),
        sa.Column("ip_address", sa.String(45), nullable=False),
        sa.Column("user_agent", sa.String(500), nullable=False),
        sa.Column("referrer", sa.String(500), nullable=True),
        sa.Column("session_id", sa.String(100), nullable=True, index=True),
        sa.Column("utm_source", sa.String(100), nullable=True),
        sa.Column("utm_medium", sa.String(100), nullable=True),
        sa.Column("utm_campaign", sa.String(100), nullable=True),
        sa.Column("clicked_at", sa.DateTime, nullable=False, index=True),
        sa.Column("converted", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("conversion_date", sa.DateTime, nullable=True),
        sa.Column("conversion_type", sa.String(50), nullable=True),
        sa.Column("commission_amount", sa.Float, nullable=True),
        sa.Column("metadata", sa.JSON, nullable=True),
        sa.Column("payment_status", sa.String(20), nullable=True),
        sa.Column("payment_reference", sa.String(200), nullable=True),
        sa.Column("payment_method", sa.String(50), nullable=True),
        sa.Column("payment_date", sa.DateTime, nullable=True),
        sa.Column("payment_notes", sa.String(1000), nullable=True),
    )
    op.create_index("ix_clicks_partner_clicked", "affiliate_clicks", ["partner_id", "clicked_at"])
    op.create_index("ix_clicks_product_clicked", "affiliate_clicks", ["product_id", "clicked_at"])
    op.create_index("ix_clicks_ip_clicked", "affiliate_clicks", ["ip_address", "clicked_at"])
    op.create_index("ix_clicks_converted_date", "affiliate_clicks", ["converted", "conversion_date"])
    op.create_index("ix_clicks_utm", "affiliate_clicks", ["utm_source", "utm_medium", "utm_campaign"])


def downgrade() -> None:
    op.drop_index("ix_clicks_utm", table_name="affiliate_clicks")
    op.drop_index("ix_clicks_converted_date", table_name="affiliate_clicks")
    op.drop_index("ix_clicks_ip_clicked", table_name="affiliate_clicks")
    op.drop_index("ix_clicks_product_clicked", table_name="affiliate_clicks")
    op.drop_index("ix_clicks_partner_clicked", table_name="affiliate_clicks")
    op.drop_table("affiliate_clicks")
    op.drop_table("products")
    op.drop_table("affiliate_partners")
