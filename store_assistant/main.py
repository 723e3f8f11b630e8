from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from dotenv import load_dotenv
import logging
import os

load_dotenv()

from .config import load_settings
from .credentials import CredentialStore
from .llm_gateway import LLMGateway
from .models import ChatRequest, ChatResponse
from .pipeline import AssistantPipeline

settings = load_settings()

log_level = getattr(logging, settings.log_level.upper(), logging.INFO)
if not logging.getLogger().handlers:
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
logging.getLogger("store_assistant").setLevel(log_level)
logger = logging.getLogger("store_assistant.api")

app = FastAPI(title="Store Assistant")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

credential_store = CredentialStore(settings.business_settings_file)
llm_gateway = LLMGateway(settings.groq_api_key, settings.groq_model, settings.llm_max_tokens)
pipeline = AssistantPipeline(settings, credential_store, llm_gateway)


@app.get("/health")
def health():
    return {"status": "ok", "llm_configured": llm_gateway.is_configured}


@app.post("/chat", response_model=ChatResponse, response_model_exclude_none=True)
def chat(request: ChatRequest):
    if not request.business_id:
        raise HTTPException(status_code=400, detail="businessId is required")
    try:
        return pipeline.handle(request)
    except Exception as e:
        logger.exception("AI Assistant Error")
        return JSONResponse(status_code=500, content={"error": str(e)})


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
