from fastapi import APIRouter
from app.api.endpoints import chatbot

api_router = APIRouter()

# Combine all sub-routers into one
api_router.include_router(chatbot.router)
