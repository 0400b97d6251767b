# Load environment variables from .env file first, before any other imports
from dotenv import load_dotenv
load_dotenv()

from fastapi import FastAPI
from jetstream_sync.api.routes import embedding_sync

app = FastAPI(title="JetStream Embedding Sync", version="1.0.0")

app.include_router(embedding_sync.router, prefix="/embedding-sync", tags=["embedding-sync"])


@app.get("/health")
def health_check():
    return {"status": "healthy"}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
