"""FastAPI application entrypoint and HTTP controllers.

This module defines the HTTP endpoints of the NextStep Scholarships
backend. Controllers are intentionally thin: they accept requests,
delegate to services, and return JSON responses. Routes marked with an
access dependency (`verify_token`, `require_admin`, `require_staff`)
answer 401 `{"message": "Unauthorized User"}` without a valid bearer
token.

Endpoint groups:
- token: POST /jwt
- users: /save-user, /all-users, /user-role, /user, /update-user,
  /update-role, /delete-user
- scholarships: /add-scholarship, /scholarships, /top-scholarships,
  /total-scholarships, /scholarship-admin-access, /scholarship,
  /update-scholarship, /delete-scholarship
- payments: POST /create-payment-intent
- applications: /applied-scholarships, /my-applications,
  /applied-scholarship, /update-application, /change-status,
  /delete-application, /add-feedback
- reviews: /add-review, /reviews, /my-reviews, /my-review,
  /update-review, /delete-review
"""

import json
import logging
import time
import uuid
from contextlib import asynccontextmanager
from typing import List, Literal, Optional

import uvicorn
from fastapi import Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from sqlmodel import Session

from . import schemas, services
from .auth import (
    AuthenticationError,
    AuthorizationError,
    issue_token,
    require_admin,
    require_staff,
    verify_token,
)
from .config import settings
from .database import create_db_and_tables, get_session
from .payments import PaymentGateway, UpstreamError, get_payment_gateway

logger = logging.getLogger("scholarship_api.api")
if not logger.handlers:
    logging.basicConfig(level=settings.LOG_LEVEL)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    create_db_and_tables()
    logger.info("database ready at %s", settings.DATABASE_URL)
    yield


app = FastAPI(title="NextStep Scholarships API", lifespan=lifespan)

if settings.ALLOW_DEV_CORS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
    request.state.request_id = req_id
    started = time.perf_counter()
    response: Response
    try:
        response = await call_next(request)
    except Exception:
        elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
        logger.exception(
            "request_failed %s",
            json.dumps(
                {
                    "request_id": req_id,
                    "path": request.url.path,
                    "method": request.method,
                    "duration_ms": elapsed_ms,
                },
                ensure_ascii=True,
            ),
        )
        raise
    response.headers["X-Request-ID"] = req_id
    elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
    logger.info(
        "request_done %s",
        json.dumps(
            {
                "request_id": req_id,
                "path": request.url.path,
                "method": request.method,
                "status_code": response.status_code,
                "duration_ms": elapsed_ms,
            },
            ensure_ascii=True,
        ),
    )
    return response


@app.exception_handler(AuthenticationError)
async def authentication_error_handler(request: Request, exc: AuthenticationError):
    return JSONResponse(
        status_code=401,
        content={"message": "Unauthorized User"},
        headers={"WWW-Authenticate": "Bearer"},
    )


@app.exception_handler(AuthorizationError)
async def authorization_error_handler(request: Request, exc: AuthorizationError):
    logger.info("forbidden %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=403, content={"message": "Forbidden Access"})


@app.exception_handler(services.BadRequestError)
@app.exception_handler(services.ConflictError)
async def bad_request_handler(request: Request, exc: Exception):
    return JSONResponse(status_code=400, content={"message": str(exc)})


@app.exception_handler(UpstreamError)
async def upstream_error_handler(request: Request, exc: UpstreamError):
    return JSONResponse(status_code=502, content={"message": "Payment provider error"})


def _update_result(counts) -> schemas.UpdateResult:
    matched, modified = counts
    return schemas.UpdateResult(matched_count=matched, modified_count=modified)


@app.get("/", response_class=PlainTextResponse)
def home():
    return "Hello from NextStep Scholarships Server.."


@app.get("/health")
def health():
    """Lightweight health check for uptime monitoring."""
    return {"status": "ok"}


# --- token --------------------------------------------------------------

@app.post('/jwt', response_model=schemas.TokenOut)
def create_token(payload: schemas.TokenIn):
    """Sign the posted identity claims into a bearer token.

    The client is expected to have verified the user with its identity
    provider already; the API trusts the posted email.
    """
    return {'token': issue_token(payload.model_dump())}


# --- users --------------------------------------------------------------

@app.post('/save-user/{email}', response_model=schemas.UserOut)
def save_user(email: str, profile: Optional[schemas.UserIn] = None, db: Session = Depends(get_session)):
    """Create the user on first sign-in (idempotent).

    Returns the stored user unchanged when the email already exists.
    """
    return services.UserService(db).save_user(email, profile or schemas.UserIn())


@app.get('/all-users/{email}', response_model=List[schemas.UserOut])
def all_users(
    email: str,
    sort: Optional[str] = Query(default=None, description="only users with this role"),
    claims: dict = Depends(require_admin),
    db: Session = Depends(get_session),
):
    """List every user except `email`, optionally filtered by role."""
    return services.UserService(db).list_users(email, role=sort or None)


@app.get('/user-role/{email}', response_model=schemas.RoleOut)
def user_role(email: str, claims: dict = Depends(verify_token), db: Session = Depends(get_session)):
    return {'role': services.UserService(db).get_role(email)}


@app.get('/user/{email}', response_model=Optional[schemas.UserOut])
def get_user(email: str, db: Session = Depends(get_session)):
    return services.UserService(db).get_user(email)


@app.patch('/update-user/{email}', response_model=schemas.UpdateResult)
def update_user(
    email: str,
    changes: schemas.UserUpdate,
    claims: dict = Depends(verify_token),
    db: Session = Depends(get_session),
):
    """Update the user's name and image. Any other key, `role` included, is ignored."""
    return _update_result(services.UserService(db).update_profile(email, changes))


@app.patch('/update-role/{email}', response_model=schemas.UpdateResult)
def update_role(
    email: str,
    payload: schemas.RoleUpdate,
    claims: dict = Depends(require_admin),
    db: Session = Depends(get_session),
):
    return _update_result(services.UserService(db).update_role(email, payload.role))


@app.delete('/delete-user/{user_id}', response_model=schemas.DeleteResult)
def delete_user(user_id: str, claims: dict = Depends(require_admin), db: Session = Depends(get_session)):
    return schemas.DeleteResult(deleted_count=services.UserService(db).delete_user(user_id))


# --- scholarships -------------------------------------------------------

@app.post('/add-scholarship', response_model=schemas.InsertResult)
def add_scholarship(
    payload: schemas.ScholarshipIn,
    claims: dict = Depends(require_staff),
    db: Session = Depends(get_session),
):
    scholarship = services.ScholarshipService(db).add(payload, poster_email=claims.get('email'))
    return schemas.InsertResult(inserted_id=scholarship.id)


@app.get('/scholarships', response_model=List[schemas.ScholarshipOut])
def list_scholarships(
    search: Optional[str] = None,
    page: int = Query(default=0, ge=0),
    limit: int = Query(default=0, ge=0),
    db: Session = Depends(get_session),
):
    """Browse listings.

    `search` matches name, degree or university (case-insensitive). The
    result is the window of `limit` rows after skipping `page * limit`;
    `limit=0` returns every match.
    """
    return services.ScholarshipService(db).search(search=search, page=page, limit=limit)


@app.get('/top-scholarships', response_model=List[schemas.ScholarshipOut])
def top_scholarships(db: Session = Depends(get_session)):
    """Up to six listings, lowest application fee first, newest first on ties."""
    return services.ScholarshipService(db).top()


@app.get('/total-scholarships', response_model=schemas.CountOut)
def total_scholarships(search: Optional[str] = None, db: Session = Depends(get_session)):
    return {'count': services.ScholarshipService(db).count(search=search)}


@app.get('/scholarship-admin-access', response_model=List[schemas.ScholarshipOut])
def scholarships_for_admin(claims: dict = Depends(require_staff), db: Session = Depends(get_session)):
    return services.ScholarshipService(db).search()


@app.get('/scholarship/{scholarship_id}', response_model=Optional[schemas.ScholarshipOut])
def get_scholarship(scholarship_id: str, db: Session = Depends(get_session)):
    return services.ScholarshipService(db).get(scholarship_id)


@app.put('/update-scholarship/{scholarship_id}', response_model=schemas.UpdateResult)
def update_scholarship(
    scholarship_id: str,
    changes: schemas.ScholarshipUpdate,
    claims: dict = Depends(require_staff),
    db: Session = Depends(get_session),
):
    return _update_result(services.ScholarshipService(db).update(scholarship_id, changes))


@app.delete('/delete-scholarship/{scholarship_id}', response_model=schemas.DeleteResult)
def delete_scholarship(scholarship_id: str, claims: dict = Depends(require_staff), db: Session = Depends(get_session)):
    return schemas.DeleteResult(deleted_count=services.ScholarshipService(db).delete(scholarship_id))


# --- payments -----------------------------------------------------------

@app.post('/create-payment-intent', response_model=schemas.PaymentIntentOut)
def create_payment_intent(
    payload: schemas.PaymentIntentIn,
    claims: dict = Depends(verify_token),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    """Ask the payment provider for a client secret covering `fee`.

    The fee is given in currency units and sent to the provider in the
    smallest unit (`fee * 100`). Nothing is stored.
    """
    secret = services.PaymentService(gateway).create_payment_intent(payload.fee)
    return schemas.PaymentIntentOut(client_secret=secret)


# --- applications -------------------------------------------------------

@app.post('/applied-scholarships', response_model=schemas.InsertResult)
def apply_for_scholarship(
    payload: schemas.ApplicationIn,
    claims: dict = Depends(verify_token),
    db: Session = Depends(get_session),
):
    application = services.ApplicationService(db).apply(payload, applicant_email=claims.get('email'))
    return schemas.InsertResult(inserted_id=application.id)


@app.get('/my-applications/{email}', response_model=List[schemas.ApplicationOut])
def my_applications(email: str, claims: dict = Depends(verify_token), db: Session = Depends(get_session)):
    return services.ApplicationService(db).list_for_user(email)


@app.get('/applied-scholarships', response_model=List[schemas.ApplicationOut])
def all_applications(
    date: Optional[Literal['applicationDeadline', 'appliedDate']] = None,
    claims: dict = Depends(require_staff),
    db: Session = Depends(get_session),
):
    """Every application, sorted by deadline (soonest first) or applied date (newest first)."""
    return services.ApplicationService(db).list_all(order_by=date)


@app.get('/applied-scholarship/{application_id}', response_model=Optional[schemas.ApplicationOut])
def get_application(application_id: str, claims: dict = Depends(verify_token), db: Session = Depends(get_session)):
    return services.ApplicationService(db).get(application_id)


@app.patch('/update-application/{application_id}', response_model=schemas.UpdateResult)
def update_application(
    application_id: str,
    changes: schemas.ApplicationUpdate,
    claims: dict = Depends(verify_token),
    db: Session = Depends(get_session),
):
    """Edit the applicant-entered fields; status and feedback stay as they are."""
    return _update_result(services.ApplicationService(db).update(application_id, changes))


@app.patch('/change-status/{application_id}', response_model=schemas.UpdateResult)
def change_status(
    application_id: str,
    payload: schemas.StatusUpdate,
    claims: dict = Depends(require_staff),
    db: Session = Depends(get_session),
):
    return _update_result(services.ApplicationService(db).change_status(application_id, payload.status))


@app.delete('/delete-application/{application_id}', response_model=schemas.DeleteResult)
def delete_application(application_id: str, claims: dict = Depends(verify_token), db: Session = Depends(get_session)):
    return schemas.DeleteResult(deleted_count=services.ApplicationService(db).delete(application_id))


@app.patch('/add-feedback/{application_id}', response_model=schemas.UpdateResult)
def add_feedback(
    application_id: str,
    payload: schemas.FeedbackIn,
    claims: dict = Depends(require_staff),
    db: Session = Depends(get_session),
):
    return _update_result(services.ApplicationService(db).add_feedback(application_id, payload.feedback))


# --- reviews ------------------------------------------------------------

@app.post('/add-review/{scholarship_id}', response_model=schemas.InsertResult)
def add_review(
    scholarship_id: str,
    payload: schemas.ReviewIn,
    claims: dict = Depends(verify_token),
    db: Session = Depends(get_session),
):
    """Review a scholarship. A second review by the same reviewer answers 400."""
    review = services.ReviewService(db).add_review(scholarship_id, payload, reviewer_email=claims.get('email'))
    return schemas.InsertResult(inserted_id=review.id)


@app.get('/reviews', response_model=List[schemas.ReviewOut])
def all_reviews(claims: dict = Depends(verify_token), db: Session = Depends(get_session)):
    return services.ReviewService(db).list_all()


@app.get('/my-reviews/{email}', response_model=List[schemas.ReviewOut])
def my_reviews(email: str, claims: dict = Depends(verify_token), db: Session = Depends(get_session)):
    return services.ReviewService(db).list_by_reviewer(email)


@app.get('/reviews/{scholarship_id}', response_model=List[schemas.ReviewOut])
def scholarship_reviews(scholarship_id: str, claims: dict = Depends(verify_token), db: Session = Depends(get_session)):
    return services.ReviewService(db).list_for_scholarship(scholarship_id)


@app.get('/my-review/{review_id}', response_model=Optional[schemas.ReviewOut])
def get_review(review_id: str, claims: dict = Depends(verify_token), db: Session = Depends(get_session)):
    return services.ReviewService(db).get(review_id)


@app.patch('/update-review/{review_id}', response_model=schemas.UpdateResult)
def update_review(
    review_id: str,
    changes: schemas.ReviewUpdate,
    claims: dict = Depends(verify_token),
    db: Session = Depends(get_session),
):
    return _update_result(services.ReviewService(db).update(review_id, changes))


@app.delete('/delete-review/{review_id}', response_model=schemas.DeleteResult)
def delete_review(review_id: str, claims: dict = Depends(verify_token), db: Session = Depends(get_session)):
    return schemas.DeleteResult(deleted_count=services.ReviewService(db).delete(review_id))


def run():
    """Serve the API with uvicorn on `HOST:PORT`."""
    uvicorn.run("scholarship_api.main:app", host=settings.HOST, port=settings.PORT, log_level=settings.LOG_LEVEL.lower())


if __name__ == "__main__":
    run()
