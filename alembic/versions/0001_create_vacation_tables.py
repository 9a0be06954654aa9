from alembic import op
import sqlalchemy as sa

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "profiles",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("user_type", sa.String(), nullable=False),
        sa.Column("first_name", sa.String(), nullable=True),
        sa.Column("last_name", sa.String(), nullable=True),
        sa.Column("phone", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "doctor_profiles",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("speciality", sa.String(), nullable=True),
        sa.Column("license_number", sa.String(), nullable=True),
        sa.Column("experience_years", sa.Integer(), nullable=True),
        sa.Column("bio", sa.Text(), nullable=True),
    )

    op.create_table(
        "establishment_profiles",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("name", sa.String(), nullable=True),
        sa.Column("establishment_type", sa.String(), nullable=True),
        sa.Column("city", sa.String(), nullable=True),
        sa.Column("phone", sa.String(), nullable=True),
        sa.Column("email", sa.String(), nullable=True),
    )

    op.create_table(
        "vacation_posts",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("doctor_id", sa.String(), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("location", sa.String(), nullable=True),
        sa.Column("speciality", sa.String(), nullable=True),
        sa.Column("hourly_rate", sa.Float(), nullable=False),
        sa.Column("requirements", sa.Text(), nullable=True),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_vacation_posts_doctor_id", "vacation_posts", ["doctor_id"], unique=False)
    op.create_index("ix_vacation_posts_speciality", "vacation_posts", ["speciality"], unique=False)
    op.create_index("ix_vacation_posts_status", "vacation_posts", ["status"], unique=False)

    op.create_table(
        "vacation_bookings",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("vacation_post_id", sa.String(), nullable=False),
        sa.Column("doctor_id", sa.String(), nullable=False),
        sa.Column("establishment_id", sa.String(), nullable=False),
        sa.Column("requested_by", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("payment_status", sa.String(), nullable=True),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("total_amount", sa.Float(), nullable=True),
        sa.Column("duration_hours", sa.Float(), nullable=True),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("contact_phone", sa.String(), nullable=True),
        sa.Column("urgency", sa.String(), nullable=False, server_default="medium"),
        sa.Column("cancellation_reason", sa.Text(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("end_date >= start_date", name="ck_vacation_bookings_dates"),
    )
    op.create_index("ix_vacation_bookings_vacation_post_id", "vacation_bookings", ["vacation_post_id"], unique=False)
    op.create_index("ix_vacation_bookings_doctor_id", "vacation_bookings", ["doctor_id"], unique=False)
    op.create_index("ix_vacation_bookings_establishment_id", "vacation_bookings", ["establishment_id"], unique=False)
    op.create_index("ix_vacation_bookings_status", "vacation_bookings", ["status"], unique=False)
    op.create_index("ix_vacation_bookings_created_at", "vacation_bookings", ["created_at"], unique=False)

    op.create_table(
        "messages",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("booking_id", sa.String(), nullable=False),
        sa.Column("sender_id", sa.String(), nullable=False),
        sa.Column("receiver_id", sa.String(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_messages_booking_id", "messages", ["booking_id"], unique=False)
    op.create_index("ix_messages_receiver_id", "messages", ["receiver_id"], unique=False)

    op.create_table(
        "notifications",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("type", sa.String(), nullable=False, server_default="info"),
        sa.Column("related_booking_id", sa.String(), nullable=True),
        sa.Column("read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"], unique=False)


def downgrade():
    op.drop_index("ix_notifications_user_id", table_name="notifications")
    op.drop_table("notifications")
    op.drop_index("ix_messages_receiver_id", table_name="messages")
    op.drop_index("ix_messages_booking_id", table_name="messages")
    op.drop_table("messages")
    op.drop_index("ix_vacation_bookings_created_at", table_name="vacation_bookings")
    op.drop_index("ix_vacation_bookings_status", table_name="vacation_bookings")
    op.drop_index("ix_vacation_bookings_establishment_id", table_name="vacation_bookings")
    op.drop_index("ix_vacation_bookings_doctor_id", table_name="vacation_bookings")
    op.drop_index("ix_vacation_bookings_vacation_post_id", table_name="vacation_bookings")
    op.drop_table("vacation_bookings")
    op.drop_index("ix_vacation_posts_status", table_name="vacation_posts")
    op.drop_index("ix_vacation_posts_speciality", table_name="vacation_posts")
    op.drop_index("ix_vacation_posts_doctor_id", table_name="vacation_posts")
    op.drop_table("vacation_posts")
    op.drop_table("establishment_profiles")
    op.drop_table("doctor_profiles")
    op.drop_table("profiles")
