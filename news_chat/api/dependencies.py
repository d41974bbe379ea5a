from fastapi import Request

from news_chat.system import NewsChatSystem


def get_system(request: Request) -> NewsChatSystem:
    """Return the system instance created at application start-up."""
    return request.app.state.system
