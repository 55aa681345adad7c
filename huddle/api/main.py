"""FastAPI wrapper for huddle."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from huddle import config
from huddle.lib import logs

from . import notifications, teams

app = FastAPI(title="huddle API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(teams.router)
app.include_router(notifications.router)


@app.get("/api/health")
async def health():
    return {"ok": True}


def main():
    import uvicorn

    logs.setup(config.get("log_level", "WARNING"))
    uvicorn.run("huddle.api.main:app", host="0.0.0.0", port=8000, access_log=False)


if __name__ == "__main__":
    main()
