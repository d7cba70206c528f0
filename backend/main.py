import uvicorn
import sys
import os

# 确保从 backend 目录启动时能找到 orderhub 包
application_path = os.path.dirname(os.path.abspath(__file__))
if application_path not in sys.path:
    sys.path.insert(0, application_path)

if __name__ == "__main__":
    is_dev = os.getenv("ORDERHUB_RELOAD", "1") == "1"

    uvicorn.run(
        "orderhub.main:app",
        host=os.getenv("ORDERHUB_HOST", "127.0.0.1"),
        port=int(os.getenv("ORDERHUB_PORT", "8000")),
        reload=is_dev,
        log_level="info"
    )
