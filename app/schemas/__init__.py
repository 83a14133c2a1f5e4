from app.schemas.auth import Token, UserCreate, UserLogin, UserResponse
from app.schemas.promotion import PromotionCreate, PromotionUpdate, PromotionResponse, PromotionListResponse
from app.schemas.financial import FinancialStats, TransactionView, RevenuePoint, PayoutView, BusinessFinancialSummary
from app.schemas.onboarding import StaffResponse, InvitationDetails, StaffOnboardingSubmit, Phase2TokenValidation
from app.schemas.booking import BookingView, BookingStatusUpdate
from app.schemas.business import BusinessHoursView, BusinessServiceView, DashboardStats
from app.schemas.conversation import ConversationView, MessageView
from app.schemas.audit_log import AuditLogEntry
