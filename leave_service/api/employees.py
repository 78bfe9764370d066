from fastapi import APIRouter, Depends, status

from leave_service.dependencies import get_employee_service
from leave_service.employees import EmployeeService
from leave_service.schemas import BalanceUpdate, EmployeeCreate, EmployeeUpdate

router = APIRouter(
    prefix="/employees",
    tags=["Employees"],
)


@router.get("")
def list_employees(service: EmployeeService = Depends(get_employee_service)):
    return {"success": True, "data": service.list_employees()}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_employee(
    payload: EmployeeCreate,
    service: EmployeeService = Depends(get_employee_service),
):
    employee = service.create(
        name=payload.name,
        email=payload.email,
        department=payload.department,
        joining_date=payload.joining_date,
        leave_balance=payload.leave_balance,
    )
    return {"success": True, "data": employee, "message": "Employee created successfully"}


@router.get("/{employee_id}")
def get_employee(
    employee_id: str,
    service: EmployeeService = Depends(get_employee_service),
):
    """The employee with its leave requests, most recent first."""
    return {"success": True, "data": service.get(employee_id)}


@router.put("/{employee_id}")
def update_employee(
    employee_id: str,
    payload: EmployeeUpdate,
    service: EmployeeService = Depends(get_employee_service),
):
    employee = service.update(employee_id, **payload.model_dump(exclude_none=True))
    return {"success": True, "data": employee, "message": "Employee updated successfully"}


@router.delete("/{employee_id}")
def delete_employee(
    employee_id: str,
    service: EmployeeService = Depends(get_employee_service),
):
    """Delete an employee. Their leave requests are deleted too."""
    service.delete(employee_id)
    return {"success": True, "message": "Employee deleted successfully"}


@router.get("/{employee_id}/balance")
def get_employee_balance(
    employee_id: str,
    service: EmployeeService = Depends(get_employee_service),
):
    return {"success": True, "data": service.get_balance(employee_id)}


@router.put("/{employee_id}/balance")
def set_employee_balance(
    employee_id: str,
    payload: BalanceUpdate,
    service: EmployeeService = Depends(get_employee_service),
):
    result = service.set_balance(employee_id, payload.leave_balance, payload.reason)
    return {"success": True, "data": result, "message": "Leave balance updated successfully"}
