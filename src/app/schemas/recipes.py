from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.app.domain.models import Category, Difficulty, Instruction


def _number_instructions(value: Any) -> Any:
    """Plain strings are accepted as instructions and numbered in order."""
    if not isinstance(value, list):
        return value
    numbered: list[Any] = []
    for index, item in enumerate(value, start=1):
        if isinstance(item, str):
            numbered.append({"step": index, "text": item})
        else:
            numbered.append(item)
    return numbered


def _clean_strings(value: Any) -> Any:
    if not isinstance(value, list):
        return value
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


class InstructionIn(BaseModel):
    step: int = Field(..., ge=1)
    text: str = Field(..., min_length=1)


class _RecipeFields(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    @field_validator("instructions", mode="before", check_fields=False)
    @classmethod
    def _instructions(cls, value: Any) -> Any:
        return _number_instructions(value)

    @field_validator("ingredients", "tags", mode="before", check_fields=False)
    @classmethod
    def _strings(cls, value: Any) -> Any:
        return _clean_strings(value)

    def _domain_fields(self, data: dict[str, Any]) -> dict[str, Any]:
        fields: dict[str, Any] = {}
        for key, value in data.items():
            if key == "prepTime":
                fields["prep_time"] = value
            elif key == "cookTime":
                fields["cook_time"] = value
            elif key == "instructions" and value is not None:
                fields["instructions"] = [Instruction(step=item["step"], text=item["text"]) for item in value]
            else:
                fields[key] = value
        return fields


class RecipeCreate(_RecipeFields):
    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=500)
    ingredients: list[str] = Field(default_factory=list)
    instructions: list[InstructionIn] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    prepTime: int = Field(..., ge=0)
    cookTime: int = Field(..., ge=0)
    servings: int = Field(4, ge=1)
    difficulty: Difficulty = Difficulty.MEDIUM
    category: Category = Category.DINNER
    image: Optional[str] = None

    def to_fields(self) -> dict[str, Any]:
        return self._domain_fields(self.model_dump())


class RecipeUpdate(_RecipeFields):
    # author and engagement fields are rejected, not ignored
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    title: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, min_length=1, max_length=500)
    ingredients: Optional[list[str]] = None
    instructions: Optional[list[InstructionIn]] = None
    tags: Optional[list[str]] = None
    prepTime: Optional[int] = Field(None, ge=0)
    cookTime: Optional[int] = Field(None, ge=0)
    servings: Optional[int] = Field(None, ge=1)
    difficulty: Optional[Difficulty] = None
    category: Optional[Category] = None
    image: Optional[str] = None

    def to_fields(self) -> dict[str, Any]:
        """Domain field names for the values that were provided."""
        return self._domain_fields(self.model_dump(exclude_unset=True))


class AuthorOut(BaseModel):
    id: str
    name: Optional[str] = None
    avatar: Optional[str] = None


class InstructionOut(BaseModel):
    step: int
    text: str


class ReviewOut(BaseModel):
    user: AuthorOut
    rating: int
    comment: Optional[str] = None
    createdAt: Optional[str] = None


class RecipeOut(BaseModel):
    id: str
    title: str
    description: str
    author: AuthorOut
    ingredients: list[str] = Field(default_factory=list)
    instructions: list[InstructionOut] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    prepTime: int
    cookTime: int
    totalTime: int
    servings: int
    difficulty: Difficulty
    category: Category
    image: Optional[str] = None
    likes: list[str] = Field(default_factory=list)
    stars: list[str] = Field(default_factory=list)
    reviews: list[ReviewOut] = Field(default_factory=list)
    averageRating: float = 0.0
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None


class RecipeListResponse(BaseModel):
    recipes: list[RecipeOut]
    page: int
    pages: int
    total: int


class LikeResponse(BaseModel):
    likes: list[str]
    liked: bool


class StarResponse(BaseModel):
    stars: list[str]
    starred: bool


class ReviewCreate(BaseModel):
    rating: int = Field(..., ge=1, le=5, strict=True)
    comment: Optional[str] = Field(None, max_length=1000)


class ReviewAddedResponse(BaseModel):
    message: str
    averageRating: float
    numReviews: int
