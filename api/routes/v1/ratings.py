"""
api/routes/v1/ratings.py -- Rating REST endpoints.

Routes:
  POST   /api/v1/ratings/            -- create as the caller; 201
  GET    /api/v1/ratings/?target=N   -- every rating of target N
  GET    /api/v1/ratings/{id}        -- one rating
  PUT    /api/v1/ratings/{id}        -- owner only
  DELETE /api/v1/ratings/{id}        -- owner or admin; 204

No permission bits are required: any authenticated caller may rate. Who may
change or remove a rating is decided by ratings/service.py, which answers
409 read_only to everyone else.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response

from api.deps import RecordId, target_query
from api.models import RatingList, RatingRequest, RatingResponse
from auth.dependencies import get_current_user
from auth.models import User
from ratings.models import Rating
from ratings.service import RatingService

router = APIRouter()


def _service(request: Request) -> RatingService:
    return request.app.state.rating_service


@router.get("/ratings/", response_model=RatingList)
def list_ratings(
    request: Request,
    _user: User = Depends(get_current_user),
    target: int = Depends(target_query),
) -> RatingList:
    ratings = _service(request).by_target(target)
    return RatingList(items=[RatingResponse.from_domain(r) for r in ratings])


@router.get("/ratings/{rating_id}", response_model=RatingResponse)
def get_rating(request: Request, rating_id: RecordId, _user: User = Depends(get_current_user)) -> RatingResponse:
    return RatingResponse.from_domain(_service(request).by_id(rating_id))


@router.post("/ratings/", response_model=RatingResponse, status_code=201)
def create_rating(
    request: Request,
    body: RatingRequest,
    user: User = Depends(get_current_user),
) -> RatingResponse:
    rating = body.to_domain(user)
    _service(request).create(rating)
    return RatingResponse.from_domain(rating)


@router.put("/ratings/{rating_id}", response_model=RatingResponse)
def update_rating(
    request: Request,
    rating_id: RecordId,
    body: RatingRequest,
    user: User = Depends(get_current_user),
) -> RatingResponse:
    rating = body.to_domain(user, rating_id)
    _service(request).update(rating)
    return RatingResponse.from_domain(rating)


@router.delete("/ratings/{rating_id}", status_code=204)
def delete_rating(request: Request, rating_id: RecordId, user: User = Depends(get_current_user)) -> Response:
    _service(request).delete(Rating(id=rating_id, user=user))
    return Response(status_code=204)
