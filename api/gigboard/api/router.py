from fastapi import APIRouter

from gigboard.api.routes import applications, engagements, health, jobs, notifications, skill_posts, users

api_router = APIRouter()
api_router.include_router(health.router, tags=["health"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(jobs.router, prefix="/jobs", tags=["jobs"])
api_router.include_router(applications.router, prefix="/applications", tags=["applications"])
api_router.include_router(engagements.router, prefix="/engagements", tags=["engagements"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["notifications"])
api_router.include_router(skill_posts.router, prefix="/skill-posts", tags=["skill-posts"])
