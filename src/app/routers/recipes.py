# src/app/routers/recipes.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from fastapi import APIRouter, Depends, Query, Request, status
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile

from src.app.deps import (
    CurrentUser,
    get_recipe_service,
    require_admin,
    require_user,
)
from src.app.domain.errors import ValidationError
from src.app.domain.models import (
    AuthorSummary,
    Category,
    Difficulty,
    Recipe,
    RecipeFilters,
)
from src.app.schemas.common import MessageResponse
from src.app.schemas.recipes import (
    AuthorOut,
    InstructionOut,
    LikeResponse,
    RecipeCreate,
    RecipeListResponse,
    RecipeOut,
    RecipeUpdate,
    ReviewAddedResponse,
    ReviewCreate,
    ReviewOut,
    StarResponse,
)
from src.app.services.recipe_service import RecipeService
from src.app.services.uploads import ImageUpload, decode_json_list

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api/recipes", tags=["recipes"])

# multipart forms carry these as JSON strings
_JSON_ARRAY_FIELDS = ("ingredients", "instructions", "tags")


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _author_out(user_id: str, authors: Dict[str, AuthorSummary]) -> AuthorOut:
    summary = authors.get(user_id)
    if summary is None:
        return AuthorOut(id=user_id)
    return AuthorOut(id=summary.id, name=summary.name, avatar=summary.avatar)


def _recipe_to_response(recipe: Recipe, authors: Dict[str, AuthorSummary]) -> RecipeOut:
    return RecipeOut(
        id=recipe.id,
        title=recipe.title,
        description=recipe.description,
        author=_author_out(recipe.author_id, authors),
        ingredients=list(recipe.ingredients),
        instructions=[InstructionOut(step=item.step, text=item.text) for item in recipe.instructions],
        tags=list(recipe.tags),
        prepTime=recipe.prep_time,
        cookTime=recipe.cook_time,
        totalTime=recipe.total_time,
        servings=recipe.servings,
        difficulty=recipe.difficulty,
        category=recipe.category,
        image=recipe.image,
        likes=list(recipe.likes),
        stars=list(recipe.stars),
        reviews=[
            ReviewOut(
                user=_author_out(review.user_id, authors),
                rating=review.rating,
                comment=review.comment,
                createdAt=_iso(review.created_at),
            )
            for review in recipe.reviews
        ],
        averageRating=recipe.average_rating,
        createdAt=_iso(recipe.created_at),
        updatedAt=_iso(recipe.updated_at),
    )


async def _read_recipe_payload(request: Request) -> Tuple[Dict[str, Any], Optional[ImageUpload]]:
    """
    Accept either a JSON object or a multipart form. In a form, array
    fields arrive JSON-encoded and the optional `image` part is returned
    unstored, so nothing reaches storage before the payload validates.
    """
    content_type = request.headers.get("content-type", "")
    if not content_type.startswith(("multipart/form-data", "application/x-www-form-urlencoded")):
        try:
            body = await request.json()
        except ValueError as exc:
            raise ValidationError("Request body must be valid JSON") from exc
        if not isinstance(body, dict):
            raise ValidationError("Request body must be a JSON object")
        return body, None

    form = await request.form()
    payload: Dict[str, Any] = {}
    upload: Optional[ImageUpload] = None
    for key, value in form.items():
        if isinstance(value, UploadFile):
            if key != "image" or not value.filename:
                continue
            upload = ImageUpload(filename=value.filename, content_type=value.content_type, data=await value.read())
            continue
        if value == "":
            continue
        payload[key] = value

    for field_name in _JSON_ARRAY_FIELDS:
        if field_name in payload:
            payload[field_name] = decode_json_list(payload[field_name], field_name)
    return payload, upload


@router.get("", response_model=RecipeListResponse)
def list_recipes(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    category: Optional[Category] = None,
    difficulty: Optional[Difficulty] = None,
    search: Optional[str] = Query(None, max_length=200),
    service: RecipeService = Depends(get_recipe_service),
) -> RecipeListResponse:
    filters = RecipeFilters(
        category=category,
        difficulty=difficulty,
        search=search.strip() if search and search.strip() else None,
    )
    result = service.list_recipes(page=page, limit=limit, filters=filters)
    return RecipeListResponse(
        recipes=[_recipe_to_response(recipe, result.authors) for recipe in result.items],
        page=result.page,
        pages=result.pages,
        total=result.total,
    )


@router.get("/{recipe_id}", response_model=RecipeOut)
def get_recipe(
    recipe_id: str,
    service: RecipeService = Depends(get_recipe_service),
) -> RecipeOut:
    recipe, authors = service.get_recipe(recipe_id)
    return _recipe_to_response(recipe, authors)


@router.post("", response_model=RecipeOut, status_code=status.HTTP_201_CREATED)
async def create_recipe(
    request: Request,
    admin: CurrentUser = Depends(require_admin),
    service: RecipeService = Depends(get_recipe_service),
) -> RecipeOut:
    payload, upload = await _read_recipe_payload(request)
    data = RecipeCreate.model_validate(payload)
    recipe = await run_in_threadpool(service.create_recipe, admin.id, data.to_fields(), upload)
    authors = {admin.id: AuthorSummary(id=admin.id, name=admin.name, avatar=admin.avatar)}
    return _recipe_to_response(recipe, authors)


@router.put("/{recipe_id}", response_model=RecipeOut)
async def update_recipe(
    recipe_id: str,
    request: Request,
    admin: CurrentUser = Depends(require_admin),
    service: RecipeService = Depends(get_recipe_service),
) -> RecipeOut:
    payload, upload = await _read_recipe_payload(request)
    data = RecipeUpdate.model_validate(payload)
    recipe = await run_in_threadpool(service.update_recipe, recipe_id, data.to_fields(), upload, admin.id)
    authors = await run_in_threadpool(service.authors_for, recipe)
    return _recipe_to_response(recipe, authors)


@router.delete("/{recipe_id}", response_model=MessageResponse)
def delete_recipe(
    recipe_id: str,
    admin: CurrentUser = Depends(require_admin),
    service: RecipeService = Depends(get_recipe_service),
) -> MessageResponse:
    service.delete_recipe(recipe_id)
    log.info("recipes.deleted id=%s by=%s", recipe_id, admin.id)
    return MessageResponse(message="Recipe removed")


@router.post("/{recipe_id}/like", response_model=LikeResponse)
def like_recipe(
    recipe_id: str,
    user: CurrentUser = Depends(require_user),
    service: RecipeService = Depends(get_recipe_service),
) -> LikeResponse:
    result = service.toggle_like(recipe_id, user.id)
    return LikeResponse(likes=result.members, liked=result.active)


@router.post("/{recipe_id}/star", response_model=StarResponse)
def star_recipe(
    recipe_id: str,
    user: CurrentUser = Depends(require_user),
    service: RecipeService = Depends(get_recipe_service),
) -> StarResponse:
    result = service.toggle_star(recipe_id, user.id)
    return StarResponse(stars=result.members, starred=result.active)


@router.post(
    "/{recipe_id}/reviews",
    response_model=ReviewAddedResponse,
    status_code=status.HTTP_201_CREATED,
)
def add_review(
    recipe_id: str,
    body: ReviewCreate,
    user: CurrentUser = Depends(require_user),
    service: RecipeService = Depends(get_recipe_service),
) -> ReviewAddedResponse:
    recipe = service.add_review(recipe_id, user.id, body.rating, body.comment)
    return ReviewAddedResponse(
        message="Review added successfully",
        averageRating=recipe.average_rating,
        numReviews=len(recipe.reviews),
    )


@router.get("/{recipe_id}/reviews", response_model=list[ReviewOut])
def list_reviews(
    recipe_id: str,
    service: RecipeService = Depends(get_recipe_service),
) -> list[ReviewOut]:
    reviews, authors = service.get_reviews(recipe_id)
    return [
        ReviewOut(
            user=_author_out(review.user_id, authors),
            rating=review.rating,
            comment=review.comment,
            createdAt=_iso(review.created_at),
        )
        for review in reviews
    ]
