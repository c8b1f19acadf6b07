from .interview import Interview
from .question_answer import QuestionAnswer
from .call import Call
from .analytics import InterviewAnalytics, GlobalAnalytics
# base and mixins are imported by the above as needed
