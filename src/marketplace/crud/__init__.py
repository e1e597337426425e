from .crud_plan import CRUDPlan
from .crud_product import CRUDProduct
from .crud_subscription import CRUDSubscription
from .crud_user import CRUDUser
