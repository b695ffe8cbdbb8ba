from fgstore.models.user import User
from fgstore.models.audit_log import AuditLog
from fgstore.models.sales_request import SalesApprovalHistory, SalesRequest
from fgstore.models.notification import Notification
from fgstore.models.showroom import DirectShowroom
from fgstore.models.inventory import FgInventoryBatch, FgPackagedBatch, FgStockMovement
from fgstore.models.location import FgStorageLocation
from fgstore.models.dispatch import FgDispatch, FgDispatchLine
from fgstore.models.pricing import FgPriceHistory, FgProductPrice
