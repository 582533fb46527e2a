import os
from dotenv import load_dotenv

load_dotenv()

user = os.getenv("DB_USER")
password = os.getenv("DB_PASSWORD")
host = os.getenv("DB_HOST")
port = os.getenv("DB_PORT", "5432")
db_name = os.getenv("DB_NAME")

review_time_seconds = int(os.getenv("REVIEW_TIME_SECONDS", "3"))
questions_per_game = int(os.getenv("QUESTIONS_PER_GAME", "10"))
log_level = os.getenv("LOG_LEVEL", "INFO")

if __name__ == "__main__":
    print(user, host, port, db_name, review_time_seconds, questions_per_game, log_level)
