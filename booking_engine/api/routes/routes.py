from fastapi import APIRouter

from booking_engine.api.routes import bookings, payments, tickets


router = APIRouter()

router.include_router(tickets.router)
router.include_router(bookings.router)
router.include_router(payments.router)


@router.get("/health")
def health():
    return {"message": "Ticket booking engine is running"}
