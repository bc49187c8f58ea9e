"""
API entry point

Run with:
    python -m quantify
"""

import uvicorn

from quantify.core.config import settings

if __name__ == "__main__":
    uvicorn.run(
        "quantify.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )
