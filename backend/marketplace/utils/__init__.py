from .json_utils import dumps
from .errors import error_response, conflict_response, domain_error_response
from .auth import normalize_email
