"""Request routing: dispatch, result selection and the package router."""

from pkgrouter.routing.dispatch import ToolDispatcher
from pkgrouter.routing.router import PackageRouter, fallback_suggestions
from pkgrouter.routing.selection import ResultSelector

__all__ = ["PackageRouter", "ResultSelector", "ToolDispatcher", "fallback_suggestions"]
