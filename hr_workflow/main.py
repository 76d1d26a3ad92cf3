"""Entry point serving the HR Workflow Designer with uvicorn."""

from .config import load_config
from .factory import create_app

config = load_config()
app = create_app(config)


def run():
    import uvicorn
    uvicorn.run("hr_workflow.main:app", **config.get_uvicorn_config())


if __name__ == "__main__":
    run()
