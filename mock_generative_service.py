from fastapi import FastAPI, HTTPException, Query
from pydantic import BaseModel
from typing import List

app = FastAPI(
    title="Generative Text Service (Stub)",
    description="Answers generateContent calls with a canned completion that echoes the prompt.",
    version="1.0.0-stub"
)


class Part(BaseModel):
    text: str


class Content(BaseModel):
    parts: List[Part]


class GenerateContentRequest(BaseModel):
    contents: List[Content]


@app.post("/v1beta/models/{model}:generateContent")
async def generate_content(model: str, body: GenerateContentRequest, key: str = Query("")):
    """
    Does not generate anything. The reply quotes the first line of the prompt so
    callers can check what was sent.
    """
    if not key:
        raise HTTPException(status_code=403, detail="API key missing.")
    prompt = body.contents[0].parts[0].text if body.contents and body.contents[0].parts else ""
    first_line = prompt.strip().splitlines()[0] if prompt.strip() else ""
    return {
        "candidates": [
            {"content": {"role": "model", "parts": [{"text": f"[{model}] {first_line}"}]}}
        ]
    }


@app.get("/health")
def health_check():
    """Health check endpoint"""
    return {"status": "healthy"}
