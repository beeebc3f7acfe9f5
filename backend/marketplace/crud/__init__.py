from .crud_user import user
from .crud_service import service
from .crud_booking import booking
from .crud_review import review

# Usage: `crud.service.list_services(...)`
