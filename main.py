"""Simple entrypoint to run the Wardrobe Studio API locally."""

import os

import uvicorn


def main() -> None:
    uvicorn.run("server.api:app", host="127.0.0.1", port=int(os.getenv("PORT", "8080")), reload=False)


if __name__ == "__main__":
    main()
