from metrics_gateway.factory import create_app

app = create_app()
