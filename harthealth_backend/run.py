# run.py
from dotenv import load_dotenv
import os
from app import create_app
basedir = os.path.abspath(os.path.dirname(__file__))
# 해당 디렉터리 안에 있는 '.env' 파일을 로드합니다.
dotenv_path = os.path.join(basedir, '.env')
load_dotenv(dotenv_path=dotenv_path)

app = create_app()

if __name__ == '__main__':
    host = os.getenv('FLASK_RUN_HOST', '127.0.0.1')
    port = int(os.getenv('FLASK_RUN_PORT', 5000))
    debug = app.config.get('DEBUG', False)
    # 일지 목록은 프로세스 메모리에 보관되므로 요청을 한 스레드에서 순서대로 처리합니다.
    app.run(host=host, port=port, debug=debug, threaded=False)
