"""Pydantic schemas for the Buildstate API."""

from app.schemas.base import *
from app.schemas.auth import *
from app.schemas.property import *
from app.schemas.job import *
from app.schemas.inspection import *
from app.schemas.service_request import *
from app.schemas.recommendation import *
from app.schemas.maintenance import *
from app.schemas.billing import *
from app.schemas.notification import *
from app.schemas.blog import *
from app.schemas.invite import *
