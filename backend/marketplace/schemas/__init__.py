from .user import (
    UserCreate,
    LoginRequest,
    UserResponse,
    AuthResponse,
    MeResponse,
    UserProfileUpdate,
    UserProfileResponse,
    TokenData,
)
from .review import ReviewCreate, ReviewResponse, ReviewDetails, ReviewListResponse
from .service import (
    ServiceCreate,
    ServiceUpdate,
    ServiceResponse,
    ServiceWithRating,
    ServiceDetail,
    ServiceFilter,
    ServiceListResponse,
)
from .booking import (
    BookingCreate,
    BookingUpdate,
    BookingResponse,
    BookingListItem,
    BookingDetail,
    BookingListResponse,
)
from .provider import (
    ProviderProfileUpdate,
    ProviderProfileResponse,
    ProviderPublicProfile,
    ProviderStats,
)
from .notification import NotificationResponse, NotificationList, NotificationAck
