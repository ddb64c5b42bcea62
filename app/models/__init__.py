# TripTrac database models
# Import all models here so Base.metadata knows every table

from app.models.user import User                          # noqa
from app.models.profile import Profile                    # noqa
from app.models.customer import Customer                  # noqa
from app.models.truck import Truck                        # noqa
from app.models.trip import Trip                          # noqa
from app.models.maintenance import Maintenance            # noqa
from app.models.otp_verification import OtpVerification   # noqa
from app.models.audit_log import AuditLog                 # noqa
