from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine
from app.db.models.reservation import STATUS_ACTIVE

# Read-optimized views queried by the post and profile endpoints.
VIEWS = {
    "v_post_engagement": f"""
        SELECT
            p.id AS post_id,
            p.advertiser_id,
            p.title,
            (SELECT COUNT(*) FROM post_comments c WHERE c.post_id = p.id) AS comments_count,
            (SELECT COUNT(*) FROM saved_posts s WHERE s.post_id = p.id) AS saves_count,
            (SELECT COUNT(*) FROM reservations r WHERE r.post_id = p.id) AS reservations_count,
            (SELECT COUNT(*) FROM reservations r
                WHERE r.post_id = p.id AND r.status = '{STATUS_ACTIVE}') AS active_reservations_count
        FROM posts p
    """,
    "v_user_profile_overview": """
        SELECT
            u.id AS user_id,
            u.name,
            u.email,
            u.phone,
            u.role,
            u.created_at AS member_since,
            pr.display_name,
            pr.avatar_url,
            pr.bio,
            pr.website,
            pr.company_name,
            pr.location,
            pr.social_links,
            pr.metadata,
            (SELECT COUNT(*) FROM posts p WHERE p.advertiser_id = u.id) AS posts_count,
            (SELECT COUNT(*) FROM saved_posts s WHERE s.client_id = u.id) AS saved_posts_count,
            (SELECT COUNT(*) FROM reservations r WHERE r.client_id = u.id) AS reservations_count
        FROM users u
        LEFT JOIN user_profiles pr ON pr.user_id = u.id
    """,
}


def create_views(bind):
    """Create or refresh the read views. Tables must already exist."""
    if isinstance(bind, Engine):
        with bind.begin() as conn:
            _create_views(conn)
    else:
        _create_views(bind)


def _create_views(conn: Connection):
    sqlite = conn.dialect.name == "sqlite"
    for name, select in VIEWS.items():
        if sqlite:
            conn.execute(text(f"DROP VIEW IF EXISTS {name}"))
            conn.execute(text(f"CREATE VIEW {name} AS {select}"))
        else:
            conn.execute(text(f"CREATE OR REPLACE VIEW {name} AS {select}"))
