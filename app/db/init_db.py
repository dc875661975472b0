from app.db.base import Base
from app.db.views import create_views

# Import every model so it is registered on Base.metadata
from app.db.models.user import User  # noqa: F401
from app.db.models.category import Category  # noqa: F401
from app.db.models.post import Post  # noqa: F401
from app.db.models.reservation import Reservation  # noqa: F401
from app.db.models.saved_post import SavedPost  # noqa: F401
from app.db.models.comment import Comment  # noqa: F401
from app.db.models.user_profile import UserProfile  # noqa: F401
from app.db.models.user_settings import UserSettings  # noqa: F401


def init_db(engine):
    Base.metadata.create_all(bind=engine)
    create_views(engine)
