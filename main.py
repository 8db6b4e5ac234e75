if __name__ == "__main__":
    import uvicorn
    import os

    port = int(os.environ.get("PORT", 3000))

    uvicorn.run("google_login.main:app",
                host="0.0.0.0",
                port=port,
                reload=False)
