"""Initial supplier portal schema

Revision ID: 001
Revises:
Create Date: 2026-10-18

Creates: suppliers, offers, offer_lines, offer_transitions, applications,
         order_lines, order_line_confirmations, confirmation_snapshots,
         event_outbox, processed_events
Enums: offerstatus, offertransitiontype, applicationstatus, eventstatus
Sequences: offer_number_seq, order_number_seq
"""

from collections.abc import Sequence

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.execute("CREATE EXTENSION IF NOT EXISTS pgcrypto;")

    # ── 1. Enum types ─────────────────────────────────────────────────────
    op.execute("CREATE TYPE offerstatus AS ENUM ('OPEN', 'APPLIED', 'ACCEPTED', 'REJECTED');")
    op.execute("CREATE TYPE offertransitiontype AS ENUM ('SEND', 'ACCEPT', 'REJECT');")
    op.execute("CREATE TYPE applicationstatus AS ENUM ('PENDING', 'CONFIRMED');")
    op.execute(
        "CREATE TYPE eventstatus AS ENUM ('PENDING', 'PROCESSING', 'COMPLETED', 'FAILED');"
    )

    # ── 2. Sequences for human-readable numbers ───────────────────────────
    op.execute("CREATE SEQUENCE offer_number_seq START WITH 1;")
    op.execute("CREATE SEQUENCE order_number_seq START WITH 1;")

    # ── 3. Suppliers ──────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE suppliers (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            name VARCHAR(255) NOT NULL,
            supplier_code VARCHAR(50),
            family VARCHAR(100) NOT NULL DEFAULT '',
            contact_email VARCHAR(255),
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT uq_suppliers_supplier_code UNIQUE (supplier_code)
        );
    """)
    op.execute("CREATE INDEX ix_suppliers_name ON suppliers (name);")

    # ── 4. Offers ─────────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE offers (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            offer_number VARCHAR(20) NOT NULL,
            description TEXT NOT NULL,
            minimum_units INTEGER NOT NULL,
            deadline TIMESTAMPTZ,
            status offerstatus NOT NULL DEFAULT 'OPEN',
            applied_supplier_id UUID REFERENCES suppliers(id) ON DELETE SET NULL,
            applied_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT uq_offers_offer_number UNIQUE (offer_number),
            CONSTRAINT ck_offers_minimum_units_positive CHECK (minimum_units > 0)
        );
    """)
    op.execute("CREATE INDEX ix_offers_status ON offers (status);")

    op.execute("""
        CREATE TABLE offer_lines (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            offer_id UUID NOT NULL REFERENCES offers(id) ON DELETE CASCADE,
            material_code VARCHAR(50) NOT NULL,
            material_description VARCHAR(500) NOT NULL,
            requested_units INTEGER NOT NULL,
            deadline TIMESTAMPTZ,
            reference_price NUMERIC(12, 4),
            confirmed_units NUMERIC(12, 3),
            confirmed_price NUMERIC(12, 4),
            confirmed_term VARCHAR(100),
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT ck_offer_lines_requested_units_positive CHECK (requested_units > 0),
            CONSTRAINT ck_offer_lines_confirmed_units_positive
                CHECK (confirmed_units IS NULL OR confirmed_units > 0),
            CONSTRAINT ck_offer_lines_confirmed_price_positive
                CHECK (confirmed_price IS NULL OR confirmed_price > 0)
        );
    """)
    op.execute("CREATE INDEX ix_offer_lines_offer_id ON offer_lines (offer_id);")

    op.execute("""
        CREATE TABLE offer_transitions (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            offer_id UUID NOT NULL REFERENCES offers(id) ON DELETE CASCADE,
            from_status offerstatus NOT NULL,
            to_status offerstatus NOT NULL,
            transition_type offertransitiontype NOT NULL,
            triggered_by UUID,
            supplier_id UUID,
            reason TEXT,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
    """)
    op.execute("CREATE INDEX ix_offer_transitions_offer_id ON offer_transitions (offer_id);")

    # ── 5. Applications (orders) ──────────────────────────────────────────
    op.execute("""
        CREATE TABLE applications (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            order_number VARCHAR(20) NOT NULL,
            offer_id UUID REFERENCES offers(id) ON DELETE SET NULL,
            supplier_id UUID NOT NULL REFERENCES suppliers(id) ON DELETE RESTRICT,
            units INTEGER NOT NULL,
            term VARCHAR(100) NOT NULL,
            price_euros NUMERIC(14, 2) NOT NULL,
            status applicationstatus NOT NULL DEFAULT 'PENDING',
            verified_at TIMESTAMPTZ,
            created_by UUID,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT uq_applications_order_number UNIQUE (order_number),
            CONSTRAINT ck_applications_units_positive CHECK (units > 0),
            CONSTRAINT ck_applications_price_positive CHECK (price_euros > 0),
            CONSTRAINT ck_applications_status_matches_verified_at CHECK (
                (status = 'CONFIRMED' AND verified_at IS NOT NULL)
                OR (status = 'PENDING' AND verified_at IS NULL)
            )
        );
    """)
    op.execute("CREATE INDEX ix_applications_supplier_id ON applications (supplier_id);")
    op.execute("CREATE INDEX ix_applications_offer_id ON applications (offer_id);")
    op.execute("CREATE INDEX ix_applications_status ON applications (status);")

    op.execute("""
        CREATE TABLE order_lines (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            application_id UUID NOT NULL REFERENCES applications(id) ON DELETE CASCADE,
            article_code VARCHAR(50) NOT NULL,
            description VARCHAR(500) NOT NULL,
            requested_units INTEGER NOT NULL,
            requested_term VARCHAR(100),
            requested_price NUMERIC(12, 4),
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT uq_order_lines_application_article UNIQUE (application_id, article_code),
            CONSTRAINT ck_order_lines_requested_units_positive CHECK (requested_units > 0)
        );
    """)
    op.execute("CREATE INDEX ix_order_lines_application_id ON order_lines (application_id);")

    op.execute("""
        CREATE TABLE order_line_confirmations (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            order_line_id UUID NOT NULL REFERENCES order_lines(id) ON DELETE CASCADE,
            application_id UUID NOT NULL REFERENCES applications(id) ON DELETE CASCADE,
            article_code VARCHAR(50) NOT NULL,
            confirmed_units NUMERIC(12, 3) NOT NULL,
            confirmed_term VARCHAR(100) NOT NULL,
            confirmed_price NUMERIC(12, 4) NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT ck_order_line_confirmations_confirmed_units_positive
                CHECK (confirmed_units > 0),
            CONSTRAINT ck_order_line_confirmations_confirmed_price_positive
                CHECK (confirmed_price > 0),
            CONSTRAINT ck_order_line_confirmations_confirmed_term_present
                CHECK (confirmed_term <> '')
        );
    """)
    op.execute("""
        CREATE INDEX ix_order_line_confirmations_application_article
            ON order_line_confirmations (application_id, article_code);
    """)
    op.execute("""
        CREATE INDEX ix_order_line_confirmations_order_line_id
            ON order_line_confirmations (order_line_id);
    """)

    op.execute("""
        CREATE TABLE confirmation_snapshots (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            application_id UUID NOT NULL REFERENCES applications(id) ON DELETE RESTRICT,
            supplier_id UUID NOT NULL,
            offer_id UUID,
            units INTEGER NOT NULL,
            term VARCHAR(100) NOT NULL,
            price_euros NUMERIC(14, 2) NOT NULL,
            lines JSONB NOT NULL DEFAULT '[]',
            confirmed_by UUID,
            confirmed_at TIMESTAMPTZ NOT NULL
        );
    """)
    op.execute("""
        CREATE INDEX ix_confirmation_snapshots_application_id
            ON confirmation_snapshots (application_id);
    """)

    # ── 6. Transactional outbox ───────────────────────────────────────────
    op.execute("""
        CREATE TABLE event_outbox (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            event_type VARCHAR(255) NOT NULL,
            aggregate_type VARCHAR(255) NOT NULL,
            aggregate_id VARCHAR(255) NOT NULL,
            payload JSONB NOT NULL DEFAULT '{}',
            status eventstatus NOT NULL DEFAULT 'PENDING',
            retry_count INTEGER NOT NULL DEFAULT 0,
            max_retries INTEGER NOT NULL DEFAULT 3,
            last_error TEXT,
            processed_at TIMESTAMPTZ,
            schema_version INTEGER NOT NULL DEFAULT 1,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
    """)
    op.execute("CREATE INDEX ix_event_outbox_status ON event_outbox (status);")
    op.execute(
        "CREATE INDEX ix_event_outbox_aggregate ON event_outbox (aggregate_type, aggregate_id);"
    )

    op.execute("""
        CREATE TABLE processed_events (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            event_id UUID NOT NULL,
            event_type VARCHAR(255) NOT NULL,
            handler_name VARCHAR(255) NOT NULL,
            processed_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            expires_at TIMESTAMPTZ NOT NULL,
            CONSTRAINT uq_processed_events_event_id UNIQUE (event_id)
        );
    """)
    op.execute("CREATE INDEX ix_processed_events_expires_at ON processed_events (expires_at);")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS processed_events;")
    op.execute("DROP TABLE IF EXISTS event_outbox;")
    op.execute("DROP TABLE IF EXISTS confirmation_snapshots;")
    op.execute("DROP TABLE IF EXISTS order_line_confirmations;")
    op.execute("DROP TABLE IF EXISTS order_lines;")
    op.execute("DROP TABLE IF EXISTS applications;")
    op.execute("DROP TABLE IF EXISTS offer_transitions;")
    op.execute("DROP TABLE IF EXISTS offer_lines;")
    op.execute("DROP TABLE IF EXISTS offers;")
    op.execute("DROP TABLE IF EXISTS suppliers;")

    op.execute("DROP SEQUENCE IF EXISTS order_number_seq;")
    op.execute("DROP SEQUENCE IF EXISTS offer_number_seq;")

    op.execute("DROP TYPE IF EXISTS eventstatus;")
    op.execute("DROP TYPE IF EXISTS applicationstatus;")
    op.execute("DROP TYPE IF EXISTS offertransitiontype;")
    op.execute("DROP TYPE IF EXISTS offerstatus;")
