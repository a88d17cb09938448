"""Run the API server: python -m finmind.api"""

import os

import uvicorn

from finmind.api.app import create_app

app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=int(os.environ.get("PORT", "4000")))
