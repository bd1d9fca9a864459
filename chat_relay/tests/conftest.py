import os

# 测试时不写日志文件，也不读取开发者本地的密钥
os.environ["LOG_DIR"] = ""
os.environ.pop("GEMINI_API_KEY", None)
