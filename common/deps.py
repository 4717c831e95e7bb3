"""
HomelyEats - Service Dependencies
===================================
FastAPI dependencies that hand out the services built once in
main.create_app() and kept on app.state.
"""

from fastapi import Request


def get_order_builder(request: Request):
    return request.app.state.order_builder


def get_status_machine(request: Request):
    return request.app.state.status_machine


def get_payment_coordinator(request: Request):
    return request.app.state.payment_coordinator


def get_payment_processor(request: Request):
    return request.app.state.payment_processor


def get_invoice_renderer(request: Request):
    return request.app.state.invoice_renderer


def get_pairing_advisor(request: Request):
    return request.app.state.pairing_advisor
