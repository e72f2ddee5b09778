"""Run the API with uvicorn: ``python -m coinledger``."""

import os

import uvicorn


def main() -> None:
    uvicorn.run(
        "coinledger.main:app",
        host=os.environ.get("HOST", "0.0.0.0"),  # noqa: S104
        port=int(os.environ.get("PORT", "3000")),
    )


if __name__ == "__main__":
    main()
