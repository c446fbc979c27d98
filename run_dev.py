"""
Local development launcher.
Equivalent to: `uvicorn element_api.main:app --reload --host 0.0.0.0 --port 8000`
"""

import os

import uvicorn

if __name__ == "__main__":
    uvicorn.run(
        "element_api.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=True,
    )
