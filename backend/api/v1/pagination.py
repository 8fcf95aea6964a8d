"""Shared page query parameter."""

from typing import Annotated

from fastapi import Query

PageQuery = Annotated[int, Query(ge=0, description="Zero-based page number")]
