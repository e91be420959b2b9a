# Import every model so Base.metadata and relationship() lookups see them all
from app.db.session import Base  # noqa: F401
from app.models.user import User  # noqa: F401
from app.models.activity import Activity  # noqa: F401
from app.models.place import Place  # noqa: F401
from app.models.booking import Booking  # noqa: F401
from app.models.payment import Payment  # noqa: F401
