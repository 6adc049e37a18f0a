"""
Bank CLI 패키지

원장 연산을 명령줄에서 호출하는 진입점.
"""
