# backoffice/models/__init__.py
from .catalog import *        # Product
from .people import *         # Client, Employee
from .sale import *           # Sale
from .sale_return import *    # SaleReturn
from .inventory import *      # InventoryMovement
