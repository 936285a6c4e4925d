# Importing the package registers every mapper on Base.metadata.
from app.models.user import User  # noqa: F401
from app.models.land import Land, LandDocument  # noqa: F401
from app.models.ownership_record import OwnershipRecord  # noqa: F401
from app.models.buy_request import BuyRequest, TimelineEvent  # noqa: F401
from app.models.land_like import LandLike  # noqa: F401
from app.models.otp_challenge import OtpChallenge  # noqa: F401
from app.models.audit_log import AuditLog  # noqa: F401
