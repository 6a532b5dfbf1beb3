"""Initial Buildstate schema

Revision ID: 001_initial
Revises:
Create Date: 2026-10-17

Users, organizations, properties/units/tenancies, jobs, inspections,
service requests, recommendations, maintenance plans, subscriptions,
job comments, notifications, blog posts, invites and the audit log.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


ENUMS = {
    'userrole': ('PROPERTY_MANAGER', 'OWNER', 'TECHNICIAN', 'TENANT', 'ADMIN'),
    'subscriptionstatus': ('TRIAL', 'ACTIVE', 'PAST_DUE', 'CANCELLED', 'SUSPENDED'),
    'subscriptionplan': ('FREE_TRIAL', 'STARTER', 'PROFESSIONAL', 'ENTERPRISE'),
    'propertystatus': ('ACTIVE', 'INACTIVE', 'UNDER_MAINTENANCE'),
    'unitstatus': ('AVAILABLE', 'OCCUPIED', 'MAINTENANCE', 'VACANT'),
    'jobstatus': ('OPEN', 'ASSIGNED', 'IN_PROGRESS', 'COMPLETED', 'CANCELLED'),
    'priority': ('LOW', 'MEDIUM', 'HIGH', 'URGENT'),
    'inspectiontype': ('ROUTINE', 'MOVE_IN', 'MOVE_OUT', 'EMERGENCY', 'COMPLIANCE'),
    'inspectionstatus': ('SCHEDULED', 'IN_PROGRESS', 'COMPLETED', 'CANCELLED'),
    'servicerequeststatus': (
        'SUBMITTED', 'UNDER_REVIEW', 'APPROVED', 'CONVERTED_TO_JOB', 'REJECTED', 'COMPLETED',
    ),
    'servicerequestcategory': (
        'PLUMBING', 'ELECTRICAL', 'HVAC', 'APPLIANCE', 'STRUCTURAL',
        'PEST_CONTROL', 'LANDSCAPING', 'GENERAL', 'OTHER',
    ),
    'recommendationstatus': ('DRAFT', 'SUBMITTED', 'APPROVED', 'REJECTED', 'IMPLEMENTED'),
    'maintenancefrequency': (
        'DAILY', 'WEEKLY', 'BIWEEKLY', 'MONTHLY', 'QUARTERLY', 'SEMIANNUALLY', 'ANNUALLY',
    ),
    'notificationtype': (
        'INSPECTION_SCHEDULED', 'INSPECTION_REMINDER', 'INSPECTION_COMPLETED',
        'JOB_ASSIGNED', 'JOB_COMPLETED', 'SERVICE_REQUEST_UPDATE',
        'RECOMMENDATION_UPDATE', 'SUBSCRIPTION_EXPIRING', 'PAYMENT_DUE', 'SYSTEM',
    ),
    'blogpoststatus': ('DRAFT', 'SCHEDULED', 'PUBLISHED', 'ARCHIVED'),
    'invitestatus': ('PENDING', 'ACCEPTED', 'EXPIRED'),
    'auditaction': (
        'USER_REGISTERED', 'PROPERTY_CREATED', 'PROPERTY_DELETED', 'OWNER_ASSIGNED',
        'TENANT_ASSIGNED', 'TENANT_REMOVED', 'JOB_CREATED', 'JOB_STATUS_CHANGED',
        'SERVICE_REQUEST_CONVERTED', 'RECOMMENDATION_DECIDED', 'SUBSCRIPTION_UPDATED',
        'BLOG_POST_GENERATED', 'INVITE_CREATED', 'INVITE_ACCEPTED',
    ),
}


def enum(name: str) -> postgresql.ENUM:
    # Types are created once up front; columns only reference them
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def uuid_pk() -> sa.Column:
    return sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True)


def fk(column: str, target: str, ondelete: str, nullable: bool = True, index: bool = True) -> sa.Column:
    return sa.Column(
        column,
        postgresql.UUID(as_uuid=True),
        sa.ForeignKey(target, ondelete=ondelete),
        nullable=nullable,
        index=index,
    )


def timestamps() -> list:
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    for name, values in ENUMS.items():
        postgresql.ENUM(*values, name=name).create(bind, checkfirst=True)

    # === ORGANIZATIONS ===
    op.create_table(
        'organizations',
        uuid_pk(),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        *timestamps(),
    )

    # === USERS ===
    op.create_table(
        'users',
        uuid_pk(),
        sa.Column('firebase_uid', sa.String(128), unique=True, nullable=False, index=True),
        sa.Column('email', sa.String(255), unique=True, nullable=False, index=True),
        sa.Column('first_name', sa.String(100), nullable=True),
        sa.Column('last_name', sa.String(100), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('role', enum('userrole'), nullable=False, index=True),
        fk('org_id', 'organizations.id', 'SET NULL'),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true()),
        sa.Column('subscription_status', enum('subscriptionstatus'), nullable=False),
        sa.Column('subscription_plan', enum('subscriptionplan'), nullable=False),
        sa.Column('trial_end_date', sa.DateTime(), nullable=True),
        sa.Column('subscription_end_date', sa.DateTime(), nullable=True),
        sa.Column('stripe_customer_id', sa.String(255), nullable=True, index=True),
        sa.Column('stripe_subscription_id', sa.String(255), nullable=True, index=True),
        *timestamps(),
    )

    # === PROPERTIES ===
    op.create_table(
        'properties',
        uuid_pk(),
        fk('org_id', 'organizations.id', 'CASCADE'),
        fk('manager_id', 'users.id', 'RESTRICT', nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('property_type', sa.String(50), nullable=True),
        sa.Column('status', enum('propertystatus'), nullable=False),
        sa.Column('address', sa.String(255), nullable=False),
        sa.Column('city', sa.String(100), nullable=False),
        sa.Column('state', sa.String(100), nullable=True),
        sa.Column('zip_code', sa.String(20), nullable=True),
        sa.Column('country', sa.String(100), server_default='Australia'),
        sa.Column('year_built', sa.Integer(), nullable=True),
        sa.Column('total_units', sa.Integer(), server_default='0'),
        sa.Column('total_area', sa.Float(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('image_url', sa.String(1024), nullable=True),
        *timestamps(),
    )

    op.create_table(
        'property_owners',
        uuid_pk(),
        fk('property_id', 'properties.id', 'CASCADE', nullable=False),
        fk('owner_id', 'users.id', 'CASCADE', nullable=False),
        sa.Column('ownership_percentage', sa.Float(), server_default='100'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('property_id', 'owner_id', name='uq_property_owner'),
    )

    op.create_table(
        'property_images',
        uuid_pk(),
        fk('property_id', 'properties.id', 'CASCADE', nullable=False),
        fk('uploaded_by_id', 'users.id', 'SET NULL', index=False),
        sa.Column('object_path', sa.String(1024), nullable=False),
        sa.Column('mime_type', sa.String(100), nullable=False),
        sa.Column('caption', sa.String(255), nullable=True),
        sa.Column('is_primary', sa.Boolean(), server_default=sa.false()),
        sa.Column('display_order', sa.Integer(), server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )

    # === UNITS & TENANCIES ===
    op.create_table(
        'units',
        uuid_pk(),
        fk('property_id', 'properties.id', 'CASCADE', nullable=False),
        sa.Column('unit_number', sa.String(50), nullable=False),
        sa.Column('status', enum('unitstatus'), nullable=False),
        sa.Column('floor', sa.Integer(), nullable=True),
        sa.Column('bedrooms', sa.Integer(), nullable=True),
        sa.Column('bathrooms', sa.Float(), nullable=True),
        sa.Column('area', sa.Float(), nullable=True),
        sa.Column('rent_amount', sa.Float(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        *timestamps(),
        sa.UniqueConstraint('property_id', 'unit_number', name='uq_unit_number_per_property'),
    )

    op.create_table(
        'unit_tenants',
        uuid_pk(),
        fk('unit_id', 'units.id', 'CASCADE', nullable=False),
        fk('tenant_id', 'users.id', 'CASCADE', nullable=False),
        sa.Column('lease_start', sa.DateTime(), nullable=False),
        sa.Column('lease_end', sa.DateTime(), nullable=True),
        sa.Column('rent_amount', sa.Float(), nullable=True),
        sa.Column('deposit_amount', sa.Float(), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), index=True),
        *timestamps(),
    )

    # === SERVICE REQUESTS ===
    op.create_table(
        'service_requests',
        uuid_pk(),
        fk('property_id', 'properties.id', 'CASCADE', nullable=False),
        fk('unit_id', 'units.id', 'SET NULL'),
        fk('requested_by_id', 'users.id', 'CASCADE', nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('category', enum('servicerequestcategory'), nullable=False),
        sa.Column('priority', enum('priority'), nullable=False),
        sa.Column('status', enum('servicerequeststatus'), nullable=False, index=True),
        sa.Column('photos', postgresql.JSONB(), nullable=True),
        sa.Column('review_notes', sa.Text(), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(), nullable=True),
        *timestamps(),
    )

    # === MAINTENANCE PLANS ===
    op.create_table(
        'maintenance_plans',
        uuid_pk(),
        fk('property_id', 'properties.id', 'CASCADE', nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('frequency', enum('maintenancefrequency'), nullable=False),
        sa.Column('next_due_date', sa.DateTime(), nullable=False, index=True),
        sa.Column('last_completed_date', sa.DateTime(), nullable=True),
        sa.Column('auto_create_jobs', sa.Boolean(), server_default=sa.true()),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), index=True),
        *timestamps(),
    )

    # === JOBS ===
    op.create_table(
        'jobs',
        uuid_pk(),
        fk('property_id', 'properties.id', 'CASCADE', nullable=False),
        fk('unit_id', 'units.id', 'SET NULL'),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', enum('jobstatus'), nullable=False, index=True),
        sa.Column('priority', enum('priority'), nullable=False),
        sa.Column('scheduled_date', sa.DateTime(), nullable=True),
        sa.Column('completed_date', sa.DateTime(), nullable=True),
        fk('assigned_to_id', 'users.id', 'SET NULL'),
        fk('created_by_id', 'users.id', 'SET NULL', index=False),
        sa.Column('estimated_cost', sa.Float(), nullable=True),
        sa.Column('actual_cost', sa.Float(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('evidence', postgresql.JSONB(), nullable=True),
        fk('service_request_id', 'service_requests.id', 'SET NULL'),
        fk('maintenance_plan_id', 'maintenance_plans.id', 'SET NULL'),
        *timestamps(),
    )

    op.create_table(
        'job_comments',
        uuid_pk(),
        fk('job_id', 'jobs.id', 'CASCADE', nullable=False),
        fk('user_id', 'users.id', 'CASCADE', nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, index=True),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )

    # === INSPECTIONS & RECOMMENDATIONS ===
    op.create_table(
        'inspections',
        uuid_pk(),
        fk('property_id', 'properties.id', 'CASCADE', nullable=False),
        fk('unit_id', 'units.id', 'SET NULL'),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('inspection_type', enum('inspectiontype'), nullable=False),
        sa.Column('status', enum('inspectionstatus'), nullable=False),
        sa.Column('scheduled_date', sa.DateTime(), nullable=False),
        sa.Column('completed_date', sa.DateTime(), nullable=True),
        fk('assigned_to_id', 'users.id', 'SET NULL'),
        fk('created_by_id', 'users.id', 'SET NULL', index=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('findings', sa.Text(), nullable=True),
        *timestamps(),
    )

    op.create_table(
        'recommendations',
        uuid_pk(),
        fk('property_id', 'properties.id', 'CASCADE', nullable=False),
        fk('inspection_id', 'inspections.id', 'SET NULL'),
        fk('created_by_id', 'users.id', 'CASCADE', nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('priority', enum('priority'), nullable=False),
        sa.Column('estimated_cost', sa.Float(), nullable=True),
        sa.Column('status', enum('recommendationstatus'), nullable=False, index=True),
        fk('approved_by_id', 'users.id', 'SET NULL', index=False),
        sa.Column('approved_at', sa.DateTime(), nullable=True),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        *timestamps(),
    )

    # === BILLING ===
    op.create_table(
        'subscriptions',
        uuid_pk(),
        sa.Column(
            'user_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('users.id', ondelete='CASCADE'),
            nullable=False,
            unique=True,
            index=True,
        ),
        sa.Column('stripe_customer_id', sa.String(255), nullable=True, index=True),
        sa.Column('stripe_subscription_id', sa.String(255), nullable=True, index=True),
        sa.Column('plan', enum('subscriptionplan'), nullable=False),
        sa.Column('status', enum('subscriptionstatus'), nullable=False),
        sa.Column('current_period_end', sa.DateTime(), nullable=True),
        sa.Column('cancel_at_period_end', sa.Boolean(), server_default=sa.false()),
        *timestamps(),
    )

    # === NOTIFICATIONS ===
    op.create_table(
        'notifications',
        uuid_pk(),
        fk('user_id', 'users.id', 'CASCADE', nullable=False),
        sa.Column('notification_type', enum('notificationtype'), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('entity_type', sa.String(50), nullable=True),
        sa.Column('entity_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('is_read', sa.Boolean(), server_default=sa.false(), index=True),
        sa.Column('read_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, index=True),
    )

    # === BLOG ===
    op.create_table(
        'blog_posts',
        uuid_pk(),
        fk('author_id', 'users.id', 'SET NULL', index=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('slug', sa.String(255), unique=True, nullable=False, index=True),
        sa.Column('excerpt', sa.Text(), nullable=True),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('html_content', sa.Text(), nullable=True),
        sa.Column('cover_image', sa.String(1024), nullable=True),
        sa.Column('meta_title', sa.String(255), nullable=True),
        sa.Column('meta_description', sa.String(500), nullable=True),
        sa.Column('meta_keywords', postgresql.JSONB(), nullable=True),
        sa.Column('category', sa.String(100), nullable=True, index=True),
        sa.Column('tags', postgresql.JSONB(), nullable=True),
        sa.Column('status', enum('blogpoststatus'), nullable=False, index=True),
        sa.Column('is_automated', sa.Boolean(), server_default=sa.false()),
        sa.Column('ai_metadata', postgresql.JSONB(), nullable=True),
        sa.Column('published_at', sa.DateTime(), nullable=True),
        sa.Column('view_count', sa.Integer(), server_default='0'),
        *timestamps(),
    )

    # === INVITES ===
    op.create_table(
        'invites',
        uuid_pk(),
        sa.Column('email', sa.String(255), nullable=False, index=True),
        sa.Column('role', enum('userrole'), nullable=False),
        sa.Column('token', sa.String(64), unique=True, nullable=False, index=True),
        sa.Column('status', enum('invitestatus'), nullable=False, index=True),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        fk('invited_by_id', 'users.id', 'CASCADE', nullable=False),
        sa.Column(
            'invited_user_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('users.id', ondelete='SET NULL'),
            nullable=True,
            unique=True,
        ),
        fk('property_id', 'properties.id', 'SET NULL', index=False),
        fk('unit_id', 'units.id', 'SET NULL', index=False),
        *timestamps(),
    )

    # === AUDIT LOG ===
    op.create_table(
        'audit_log',
        uuid_pk(),
        fk('org_id', 'organizations.id', 'SET NULL'),
        fk('user_id', 'users.id', 'SET NULL'),
        sa.Column('action', enum('auditaction'), nullable=False, index=True),
        sa.Column('resource_type', sa.String(50), nullable=False),
        sa.Column('resource_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('details', postgresql.JSONB(), nullable=True),
        sa.Column('ip_address', sa.String(45), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, index=True),
    )


def downgrade() -> None:
    for table in (
        'audit_log', 'invites', 'job_comments', 'blog_posts', 'notifications', 'subscriptions',
        'recommendations', 'inspections', 'jobs', 'maintenance_plans',
        'service_requests', 'unit_tenants', 'units', 'property_images',
        'property_owners', 'properties', 'users', 'organizations',
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for name in reversed(list(ENUMS)):
        postgresql.ENUM(name=name).drop(bind, checkfirst=True)
