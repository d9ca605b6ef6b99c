from .user_model import Users
from .subscription_model import Subscription
from .usage_model import UsagePeriod
from .artifact_model import AudioArtifact
from .payment_model import PaymentOrder

__all__ = [
    "Users",
    "Subscription",
    "UsagePeriod",
    "AudioArtifact",
    "PaymentOrder",
]
