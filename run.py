from marketpulse import create_app
from marketpulse.tasks.scheduler import PipelineScheduler
from config import get_config
import atexit

config = get_config()

app = create_app(config)

# Scheduler setup
pipeline = app.extensions['marketpulse']['pipeline']
store = app.extensions['marketpulse']['store']
scheduler = PipelineScheduler(pipeline)
scheduler.schedule_pipeline(config.PIPELINE_CRON, config.PIPELINE_SOURCES)
scheduler.start()


def cleanup():
    scheduler.shutdown()
    store.close()


atexit.register(cleanup)

if __name__ == '__main__':
    app.run(host='0.0.0.0', port=config.PORT, threaded=True)
