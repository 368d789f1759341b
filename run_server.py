import uvicorn
import os

if __name__ == "__main__":
    port = int(os.environ.get("ASPD_PORT", "8000"))

    print("Starting ASPD Engine API Server...")
    print(f"Docs available at: http://localhost:{port}/docs")

    uvicorn.run(
        "aspd.api.server:app",
        host="0.0.0.0",
        port=port,
        reload=True
    )
