import uvicorn

if __name__ == "__main__":
    # Run the AI API proxy gateway on port 8000
    uvicorn.run("ai_proxy.main:app", host="0.0.0.0", port=8000)
