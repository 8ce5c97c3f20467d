import uvicorn

from task_api.config import HOST, PORT


def main():
    uvicorn.run("task_api.main:app", host=HOST, port=PORT)


if __name__ == "__main__":
    main()
