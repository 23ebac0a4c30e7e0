from fastapi import Depends, Request

from .container import ApplicationContainer


def get_container(request: Request) -> ApplicationContainer:
    container = getattr(request.app.state, "container", None)
    if not container:
        raise RuntimeError("Application container not initialised.")
    return container


def get_account_manager(container: ApplicationContainer = Depends(get_container)):
    return container.account_manager


def get_role_manager(container: ApplicationContainer = Depends(get_container)):
    return container.role_manager


def get_admin_workflow(container: ApplicationContainer = Depends(get_container)):
    return container.admin_workflow
