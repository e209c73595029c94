"""Example FastAPI app guarded by ipacl."""

from fastapi import FastAPI
import uvicorn

from ipacl import ACLMiddleware, load_policy

policy = load_policy("examples/policy.yaml")

app = FastAPI()
app.add_middleware(
    ACLMiddleware,
    evaluate=policy.build(),
    respond_with=policy.respond_with,
    trust_forwarded=policy.trust_forwarded,
)


@app.get("/health_check")
async def health_check() -> dict[str, bool]:
    return {"ok": True}


@app.get("/admin/users/{user_id}")
async def admin_user(user_id: int) -> dict[str, int]:
    return {"id": user_id}


if __name__ == "__main__":
    uvicorn.run(app, host="127.0.0.1", port=8000)
