import uvicorn

from propertyhub.config import settings

if __name__ == "__main__":
    uvicorn.run("propertyhub.main:app", host="0.0.0.0", port=settings.PORT)
