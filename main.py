import logging
import math
from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import FastAPI, HTTPException, Depends, Query, Request
from fastapi.responses import JSONResponse
from fastapi.security import OAuth2PasswordRequestForm

from api.schemas import (
    # Availability
    AvailabilityResponse, DateAvailabilityResponse,
    # Reservation
    QuoteRequest, CreateReservationRequest, ModifyReservationRequest,
    ConfirmReservationRequest, CancelReservationRequest,
    ReservationResponse, CreateReservationResponse, CancelReservationResponse,
    ReservationListResponse, PageMeta, PriceBreakdownResponse,
    # Parameters
    ParameterResponse, UpdateParameterRequest,
    # Auth
    Token, UserResponse
)

from api.dependencies import get_current_active_user, get_user
from infrastructure.security import verify_password, create_access_token
from domain.auth import User

from application.services import ReservationService, AvailabilityService, ParameterService
from infrastructure.locking import DateRangeLock
from infrastructure.repositories.in_memory_repositories import (
    InMemoryReservationRepository, InMemoryParameterRepository
)
from domain.enums import Block, ReservationStatus
from domain.errors import (
    ConfigurationError, InvalidRangeError, InvalidStateError, ReservationNotFoundError,
    ReservationRejectedError, TransientError
)
from config import settings

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.app_name,
    description="Availability, pricing and reservation lifecycle for a single property",
    version="1.0.0"
)

# Initialize repositories
reservation_repo = InMemoryReservationRepository()
parameter_repo = InMemoryParameterRepository()
parameter_service = ParameterService(parameter_repo, settings.parameter_cache_ttl_seconds)
booking_lock = DateRangeLock(settings.booking_lock_timeout_seconds)


# Dependency injection
def get_parameter_service() -> ParameterService:
    return parameter_service


def get_reservation_service() -> ReservationService:
    return ReservationService(reservation_repo, parameter_service, booking_lock)


def get_availability_service() -> AvailabilityService:
    return AvailabilityService(reservation_repo, parameter_service)


# ============================================================================
# ERROR MAPPING
# ============================================================================

@app.exception_handler(ReservationRejectedError)
async def reservation_rejected_handler(request: Request, exc: ReservationRejectedError):
    return JSONResponse(
        status_code=422,
        content={"errors": [error.model_dump(mode="json") for error in exc.errors]},
    )


@app.exception_handler(InvalidRangeError)
async def invalid_range_handler(request: Request, exc: InvalidRangeError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(ReservationNotFoundError)
async def not_found_handler(request: Request, exc: ReservationNotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(InvalidStateError)
async def invalid_state_handler(request: Request, exc: InvalidStateError):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(TransientError)
async def transient_handler(request: Request, exc: TransientError):
    return JSONResponse(
        status_code=503,
        content={"detail": str(exc), "retryable": True},
        headers={"Retry-After": "1"},
    )


@app.exception_handler(ConfigurationError)
async def configuration_handler(request: Request, exc: ConfigurationError):
    logger.error("Configuration error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"detail": "System parameters are misconfigured"})


# ============================================================================
# HEALTH & ENUM REFERENCE ENDPOINTS
# ============================================================================

@app.get("/api/health", tags=["Health"])
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "message": "API is running"}


@app.get("/api/enums/block", tags=["Enum Reference"])
async def get_blocks():
    """Get all Block enum values"""
    return {
        "values": [item.value for item in Block],
        "description": "Arrival/departure windows: morning (08:00), night (20:00)"
    }


@app.get("/api/enums/reservation-status", tags=["Enum Reference"])
async def get_reservation_statuses():
    """Get all ReservationStatus enum values"""
    return {
        "values": [item.value for item in ReservationStatus],
        "description": "Reservation status values: requested, confirmed, cancelled"
    }


# ============================================================================
# AUTH ENDPOINTS
# ============================================================================

@app.post("/token", response_model=Token, tags=["Auth"])
async def login_for_access_token(form_data: OAuth2PasswordRequestForm = Depends()):
    user = get_user(form_data.username)
    if not user or not verify_password(form_data.password, user.hashed_password):
        raise HTTPException(
            status_code=401,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    access_token = create_access_token(user.username)
    return {"access_token": access_token, "token_type": "bearer"}


@app.get("/users/me", response_model=UserResponse, tags=["Auth"])
async def read_users_me(current_user: User = Depends(get_current_active_user)):
    return current_user


# ============================================================================
# AVAILABILITY ENDPOINTS
# ============================================================================

@app.get("/api/availability", response_model=AvailabilityResponse, tags=["Availability"])
async def get_availability(
    from_date: date = Query(..., alias="from"),
    to_date: date = Query(..., alias="to"),
    service: AvailabilityService = Depends(get_availability_service)
):
    """Morning/night availability for every date in [from, to]"""
    dates = await service.get_availability(from_date, to_date)
    return AvailabilityResponse(
        from_date=from_date,
        to_date=to_date,
        dates=[
            DateAvailabilityResponse(
                date=state.date,
                morning_available=state.morning_available,
                night_available=state.night_available
            )
            for state in dates
        ]
    )


# ============================================================================
# PARAMETER ENDPOINTS
# ============================================================================

@app.get("/api/parameters", tags=["Parameters"])
async def get_parameters(service: ParameterService = Depends(get_parameter_service)):
    """Current system parameters with typed values"""
    parameters = await service.get_parameters()
    return {"data": parameters.model_dump()}


@app.put("/api/parameters/{key}", response_model=ParameterResponse, tags=["Parameters"])
async def update_parameter(
    key: str,
    request: UpdateParameterRequest,
    service: ParameterService = Depends(get_parameter_service),
    current_user: User = Depends(get_current_active_user)
):
    """Change one system parameter"""
    try:
        parameter = await service.update_parameter(key, request.value)
    except ConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    logger.info("Parameter %s updated by %s", key, current_user.username)
    return ParameterResponse(
        key=parameter.key,
        value=parameter.value,
        type=parameter.type,
        description=parameter.description
    )


# ============================================================================
# RESERVATION ENDPOINTS
# ============================================================================

@app.post("/api/reservations/quote", response_model=PriceBreakdownResponse, tags=["Reservations"])
async def quote_reservation(
    request: QuoteRequest,
    service: ReservationService = Depends(get_reservation_service)
):
    """Price a stay without booking it"""
    breakdown = await service.quote(request.to_candidate())
    return PriceBreakdownResponse.from_breakdown(breakdown)


@app.post("/api/reservations", response_model=CreateReservationResponse, status_code=201, tags=["Reservations"])
async def create_reservation(
    request: CreateReservationRequest,
    service: ReservationService = Depends(get_reservation_service)
):
    """Request a new reservation"""
    reservation, breakdown = await service.create_reservation(
        candidate=request.to_candidate(),
        client=request.client.to_contact()
    )
    return CreateReservationResponse(
        reservation=ReservationResponse.from_entity(reservation),
        estimated_amount=reservation.estimated_amount,
        price_breakdown=PriceBreakdownResponse.from_breakdown(breakdown)
    )


@app.get("/api/reservations", response_model=ReservationListResponse, tags=["Reservations"])
async def list_reservations(
    status: Optional[ReservationStatus] = None,
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(15, ge=1, le=200),
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(get_current_active_user)
):
    """List reservations, newest first"""
    reservations, total = await service.list_reservations(
        status=status, from_date=from_date, to_date=to_date, page=page, per_page=per_page
    )
    return ReservationListResponse(
        data=[ReservationResponse.from_entity(r) for r in reservations],
        meta=PageMeta(
            total=total,
            page=page,
            per_page=per_page,
            last_page=max(1, math.ceil(total / per_page))
        )
    )


@app.get("/api/reservations/{reservation_id}", response_model=ReservationResponse, tags=["Reservations"])
async def get_reservation(
    reservation_id: UUID,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(get_current_active_user)
):
    """Get reservation by ID"""
    reservation = await service.get_reservation(reservation_id)
    return ReservationResponse.from_entity(reservation)


@app.put("/api/reservations/{reservation_id}", response_model=ReservationResponse, tags=["Reservations"])
async def modify_reservation(
    reservation_id: UUID,
    request: ModifyReservationRequest,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(get_current_active_user)
):
    """Change dates, blocks or party size"""
    current = await service.get_reservation(reservation_id)
    reservation = await service.modify_reservation(
        reservation_id=reservation_id,
        new_stay=request.new_stay(current.stay),
        new_guest_count=request.new_guest_count(current.guest_count)
    )
    return ReservationResponse.from_entity(reservation)


@app.post("/api/reservations/{reservation_id}/confirm", response_model=ReservationResponse, tags=["Reservations"])
async def confirm_reservation(
    reservation_id: UUID,
    request: ConfirmReservationRequest,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(get_current_active_user)
):
    """Confirm a reservation request"""
    reservation = await service.confirm_reservation(
        reservation_id=reservation_id,
        final_amount=request.final_amount,
        deposit=request.deposit_info
    )
    return ReservationResponse.from_entity(reservation)


@app.post("/api/reservations/{reservation_id}/cancel", response_model=CancelReservationResponse, tags=["Reservations"])
async def cancel_reservation(
    reservation_id: UUID,
    request: CancelReservationRequest,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(get_current_active_user)
):
    """Cancel a reservation and report refund eligibility"""
    reservation, refund_eligible = await service.cancel_reservation(
        reservation_id=reservation_id,
        reason=request.reason
    )
    return CancelReservationResponse(
        reservation=ReservationResponse.from_entity(reservation),
        refund_eligible=refund_eligible
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host=settings.host, port=settings.port, reload=settings.debug)
