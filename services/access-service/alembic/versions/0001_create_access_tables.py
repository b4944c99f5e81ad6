from alembic import op
import sqlalchemy as sa

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "organizations",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
    )

    op.create_table(
        "properties",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("org_id", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("address", sa.String(), nullable=True),
    )
    op.create_index("ix_properties_org_id", "properties", ["org_id"])

    op.create_table(
        "tenants",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(), nullable=False, unique=True),
        sa.Column("property_id", sa.String(), nullable=True),
        sa.Column("unit_id", sa.String(), nullable=True),
    )

    op.create_table(
        "smart_cases",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("org_id", sa.String(), nullable=False),
        sa.Column("property_id", sa.String(), nullable=True),
        sa.Column("unit_id", sa.String(), nullable=True),
        sa.Column("tenant_id", sa.String(), nullable=True),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="New"),
        sa.Column("priority", sa.String(), nullable=False, server_default="Medium"),
        sa.Column("specialty_id", sa.String(), nullable=True),
        sa.Column("assigned_contractor_id", sa.String(), nullable=True),
        sa.Column("is_urgent", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("restrict_to_favorites", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("posted_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_smart_cases_org_id", "smart_cases", ["org_id"])
    op.create_index("ix_smart_cases_property_id", "smart_cases", ["property_id"])
    op.create_index("ix_smart_cases_tenant_id", "smart_cases", ["tenant_id"])
    op.create_index("ix_smart_cases_assigned_contractor_id", "smart_cases", ["assigned_contractor_id"])

    op.create_table(
        "favorite_contractors",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("org_id", sa.String(), nullable=False),
        sa.Column("contractor_user_id", sa.String(), nullable=False),
        sa.UniqueConstraint("org_id", "contractor_user_id"),
    )
    op.create_index("ix_favorite_contractors_org_id", "favorite_contractors", ["org_id"])
    op.create_index("ix_favorite_contractors_contractor_user_id", "favorite_contractors", ["contractor_user_id"])

    op.create_table(
        "contractor_org_links",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("contractor_user_id", sa.String(), nullable=False),
        sa.Column("org_id", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="active"),
        sa.Column("last_job_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("contractor_user_id", "org_id"),
    )
    op.create_index("ix_contractor_org_links_contractor_user_id", "contractor_org_links", ["contractor_user_id"])
    op.create_index("ix_contractor_org_links_org_id", "contractor_org_links", ["org_id"])

    op.create_table(
        "user_contractor_specialties",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("specialty_id", sa.String(), nullable=False),
        sa.UniqueConstraint("user_id", "specialty_id"),
    )
    op.create_index("ix_user_contractor_specialties_user_id", "user_contractor_specialties", ["user_id"])

    op.create_table(
        "contractor_profiles",
        sa.Column("user_id", sa.String(), primary_key=True),
        sa.Column("is_available", sa.Boolean(), nullable=False, server_default=sa.true()),
    )


def downgrade():
    op.drop_table("contractor_profiles")
    op.drop_index("ix_user_contractor_specialties_user_id", table_name="user_contractor_specialties")
    op.drop_table("user_contractor_specialties")
    op.drop_index("ix_contractor_org_links_org_id", table_name="contractor_org_links")
    op.drop_index("ix_contractor_org_links_contractor_user_id", table_name="contractor_org_links")
    op.drop_table("contractor_org_links")
    op.drop_index("ix_favorite_contractors_contractor_user_id", table_name="favorite_contractors")
    op.drop_index("ix_favorite_contractors_org_id", table_name="favorite_contractors")
    op.drop_table("favorite_contractors")
    op.drop_index("ix_smart_cases_assigned_contractor_id", table_name="smart_cases")
    op.drop_index("ix_smart_cases_tenant_id", table_name="smart_cases")
    op.drop_index("ix_smart_cases_property_id", table_name="smart_cases")
    op.drop_index("ix_smart_cases_org_id", table_name="smart_cases")
    op.drop_table("smart_cases")
    op.drop_table("tenants")
    op.drop_index("ix_properties_org_id", table_name="properties")
    op.drop_table("properties")
    op.drop_table("organizations")
