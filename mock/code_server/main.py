from fastapi import FastAPI
from pydantic import BaseModel
from collections import defaultdict
from datetime import date
import os

app = FastAPI(title="Mock Negotiation Code Server", version="1.0.0")
# Set MOCK_CODE_REPEAT=N to hand out each code N times and exercise collision retries
REPEAT = int(os.environ.get("MOCK_CODE_REPEAT", "1"))
_calls: dict[str, int] = defaultdict(int)


class CodeRequest(BaseModel):
    p_clinic_id: str


@app.get("/health")
def health():
    return {"status": "ok"}


@app.post("/rpc/generate_negotiation_code")
def generate_negotiation_code(body: CodeRequest):
    _calls[body.p_clinic_id] += 1
    sequence = (_calls[body.p_clinic_id] + REPEAT - 1) // REPEAT
    return f"NEG-{date.today().year}-{sequence:04d}"
