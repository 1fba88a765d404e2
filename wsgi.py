from fastcoach import create_app

app = create_app()
