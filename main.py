import logging

import uvicorn

from local_eats.web import app

if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(threadName)s [%(name)s] %(levelname)-8s %(message)s")
    logging.getLogger("local_eats").setLevel(logging.INFO)
    uvicorn.run(app, host="0.0.0.0", port=8000)
