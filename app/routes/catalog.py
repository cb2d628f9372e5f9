from fastapi import APIRouter, Depends, HTTPException

from app.dependencies.services import get_catalog_service
from app.schemas.catalog import CourseListResponse, StudentListResponse
from app.services import CatalogService
from app.services.exceptions import ServiceError

router = APIRouter()


@router.get("/courses", response_model=CourseListResponse)
async def list_courses(service: CatalogService = Depends(get_catalog_service)):
    try:
        courses = await service.list_courses()
    except ServiceError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return CourseListResponse(total=len(courses), items=courses)


@router.get("/students", response_model=StudentListResponse)
async def list_students(service: CatalogService = Depends(get_catalog_service)):
    try:
        students = await service.list_students()
    except ServiceError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return StudentListResponse(total=len(students), items=students)
